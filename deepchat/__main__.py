"""
deepchat CLI entry point.

Provides a command-line interface for one-off orchestrated questions and
utility commands.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from deepchat import __version__
from deepchat.client import DeepSeekClient
from deepchat.config.logging import get_logger, setup_logging
from deepchat.config.settings import Settings, load_settings
from deepchat.llm import OrchestrationError, ResponseFormat, TokenEstimator
from deepchat.tools import JsonSchema, ToolCallContext, ToolDefinition, ToolResult


def create_parser() -> argparse.ArgumentParser:
    """Create and configure argument parser."""
    parser = argparse.ArgumentParser(
        prog="deepchat",
        description="Tool-calling conversations with the DeepSeek chat-completion API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"deepchat {__version__}",
    )

    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to .env file (default: .env in current directory)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override logging level from config",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Config command
    subparsers.add_parser(
        "config",
        help="Show current configuration",
    )

    # Ask command
    ask_parser = subparsers.add_parser(
        "ask",
        help="Ask a question and run the tool-calling loop to a final answer",
    )
    ask_parser.add_argument(
        "question",
        help='Question to ask, e.g. "What\'s the weather in Berlin?"',
    )
    ask_parser.add_argument(
        "--model",
        default=None,
        help="Model id (default: DEEPSEEK_MODEL from config)",
    )
    ask_parser.add_argument(
        "--system",
        default=None,
        help="Optional system message sent before the question",
    )
    ask_parser.add_argument(
        "--json",
        action="store_true",
        help="Request a JSON object response (not supported by deepseek-reasoner)",
    )
    ask_parser.add_argument(
        "--weather-tool",
        action="store_true",
        help="Register a demo get_weather tool the model may call",
    )

    # Models command
    subparsers.add_parser(
        "models",
        help="List the models available to your account",
    )

    # Balance command
    subparsers.add_parser(
        "balance",
        help="Show your account balance",
    )

    # Tokens command
    tokens_parser = subparsers.add_parser(
        "tokens",
        help="Count the tokens of a piece of text",
    )
    tokens_parser.add_argument(
        "text",
        help="Text to estimate",
    )
    tokens_parser.add_argument(
        "--heuristic",
        action="store_true",
        help="Skip the tokenizer and use the per-script character estimate",
    )

    return parser


def _weather_callback(context: ToolCallContext) -> ToolResult:
    """Demo tool: always sunny."""
    city = context.get("location") or "unknown"
    return ToolResult.of(json.dumps({"city": city, "forecast": "Sunny"}))


def build_weather_tool() -> ToolDefinition:
    """The demo get_weather tool used by `ask --weather-tool`."""
    return (
        ToolDefinition.build("get_weather")
        .description("Fetch the current weather for a city.")
        .parameter("location", JsonSchema.string("City name, e.g. Berlin"), required=True)
        .callback(_weather_callback)
        .build()
    )


def cmd_config(settings: Settings) -> int:
    """Show current configuration."""
    logger = get_logger(__name__)

    logger.info("Current Configuration:")
    logger.info("\n=== deepchat Configuration ===\n")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Log Level: {settings.log_level}")
    logger.info(f"Log File: {settings.log_file or 'None (console only)'}")
    logger.info(f"\nModel: {settings.client.model}")
    logger.info(f"Provider: {settings.client.provider}")
    logger.info(f"Base URL: {settings.client.base_url}")
    logger.info(f"API Key: {'Set' if settings.client.api_key else 'Not set'}")
    logger.info(f"Max Turns: {settings.client.max_turns}")
    logger.info(f"Timeout: {settings.client.timeout_seconds or 'None'}")
    logger.info(f"\nRetry Attempts: {settings.retry.max_attempts}")
    logger.info(f"Retry Backoff: {settings.retry.backoff_base_ms}ms (max {settings.retry.backoff_max_ms}ms)")

    return 0


async def cmd_ask(args, settings: Settings, client: DeepSeekClient | None = None) -> int:
    """
    Run one orchestrated conversation for a question.

    Flow:
      1. Build a request from --system and the question
      2. Optionally register the demo get_weather tool
      3. Run the loop; tool calls are answered locally until the model
         replies without requesting a tool
      4. Print the answer, the reasoning (deepseek-reasoner) and token usage
    """
    logger = get_logger(__name__)
    client = client or DeepSeekClient(settings)

    request = client.new_request(model=args.model)
    if args.system:
        request = request.add_system_message(args.system)
    request = request.add_user_message(args.question)
    if args.json:
        request = request.with_options(response_format=ResponseFormat.json_object())
    if args.weather_tool:
        request = request.add_tool(build_weather_tool())

    logger.info(f"Sending to {request.model}...")

    try:
        result = await client.chat_with_history(request)
    except OrchestrationError as e:
        print(f"\nError: {e}", file=sys.stderr)
        return 1

    response = result.response
    print(f"\n=== {response.model or request.model} ===")
    print(f"Q: {args.question}\n")

    reasoning = response.reasoning_content()
    if reasoning:
        print("--- Reasoning ---")
        print(reasoning)
        print()

    print(response.assistant_message() or "")

    tool_messages = [m for m in result.messages if m.tool_call_id]
    if tool_messages:
        print("\n--- Tool Results ---")
        for message in tool_messages:
            print(f"  {message.tool_call_id} → {message.content}")

    print(f"\nTurns: {result.turns}  Finish reason: {response.finish_reason()}")
    if response.usage is not None:
        usage = response.usage
        print(f"Tokens: {usage.total_tokens} "
              f"(prompt {usage.prompt_tokens} "
              f"+ completion {usage.completion_tokens})")

    return 0


def cmd_tokens(args, settings: Settings) -> int:
    """Print the token count of the given text."""
    tokenizer = None if args.heuristic else (settings.client.tokenizer or None)
    estimator = TokenEstimator(tokenizer)
    print(estimator.count(args.text))
    return 0


async def cmd_models(settings: Settings, client: DeepSeekClient | None = None) -> int:
    """List available models."""
    client = client or DeepSeekClient(settings)
    try:
        models = await client.list_models()
    except OrchestrationError as e:
        print(f"\nError: {e}", file=sys.stderr)
        return 1

    print(f"\n=== Models ({len(models.data)}) ===")
    for model in models.data:
        print(f"  {model.id}  (owned by {model.owned_by or 'unknown'})")
    return 0


async def cmd_balance(settings: Settings, client: DeepSeekClient | None = None) -> int:
    """Show the account balance."""
    client = client or DeepSeekClient(settings)
    try:
        balance = await client.get_balance()
    except OrchestrationError as e:
        print(f"\nError: {e}", file=sys.stderr)
        return 1

    print("\n=== Balance ===")
    print(f"Available: {'yes' if balance.is_available else 'no'}")
    for info in balance.balance_infos:
        print(f"  {info.currency}: total {info.total_balance} "
              f"(granted {info.granted_balance} + topped up {info.topped_up_balance})")
    return 0


def main() -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    # Load settings
    try:
        settings = load_settings(env_file=args.env_file)
    except Exception as e:
        print(f"Error loading settings: {e}", file=sys.stderr)
        return 1

    # Override log level if specified
    if args.log_level:
        settings.log_level = args.log_level

    setup_logging(settings)

    if args.command == "config":
        return cmd_config(settings)
    elif args.command == "ask":
        return asyncio.run(cmd_ask(args, settings))
    elif args.command == "tokens":
        return cmd_tokens(args, settings)
    elif args.command == "models":
        return asyncio.run(cmd_models(settings))
    elif args.command == "balance":
        return asyncio.run(cmd_balance(settings))
    else:
        # Default: show help
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
