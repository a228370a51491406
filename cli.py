#!/usr/bin/env python3
"""Terminal client for talking to the Hedron agent over its WebSocket API"""

import argparse
import asyncio
import sys
from typing import Dict, Optional, Set

from hedron.config import settings
from hedron.core.errors import AuthError, ConversationNotFoundError, TransportError
from hedron.core.session import AgentSession
from hedron.core.session_store import SessionStore
from hedron.core.swap.extractor import SwapQuoteExtractor
from hedron.logging_config import setup_logging
from hedron.types.chat import Author, ConnectionState, TransactionStatus, Turn
from hedron.types.swap import SwapQuote
from hedron.wallet import SimulatedWallet

QUICK_COMMANDS = {
    "balance": "What is my HBAR balance?",
    "create token": 'Create a fungible token called "MyToken" with symbol "MTK"',
    "create topic": "Create a new consensus topic for messages",
}

STATE_ICONS = {
    ConnectionState.DISCONNECTED: "🔌",
    ConnectionState.CONNECTING: "⏳",
    ConnectionState.CONNECTED: "🔗",
    ConnectionState.AUTHENTICATING: "🔐",
    ConnectionState.AUTHENTICATED: "✅",
}


def print_quote(quote: SwapQuote) -> None:
    """Pretty print a swap quote"""
    mode = "Exact Input" if quote.operation == "get_amounts_out" else "Exact Output"
    print(f"\n💱 Swap Quote ({quote.network}, {mode})")
    print("=" * 50)
    print(f"You pay:     {quote.input.formatted} {quote.input.token} ({quote.input.token_id})")
    print(f"You receive: {quote.output.formatted} {quote.output.token} ({quote.output.token_id})")
    print(f"Rate:        1 {quote.input.token} = {quote.exchange_rate} {quote.output.token}")
    print(f"Fees:        {', '.join(quote.fee_percentages)}")
    print(f"Path:        {' → '.join(quote.path)}")
    if quote.gas_estimate:
        print(f"Gas:         {quote.gas_estimate}")


class TurnPrinter:
    """Prints turns of the current conversation as they are appended."""

    def __init__(self) -> None:
        self._seen: Set[str] = set()
        self._statuses: Dict[str, TransactionStatus] = {}

    def __call__(self, store: SessionStore) -> None:
        conversation = store.current
        if conversation is None:
            return
        for turn in conversation.turns:
            if turn.id not in self._seen:
                self._seen.add(turn.id)
                self.print_turn(turn)
            self._print_status_change(turn)

    def print_turn(self, turn: Turn) -> None:
        if turn.author is Author.USER:
            return
        if turn.author is Author.AGENT:
            print(f"\n🤖 Agent: {turn.text}")
            if turn.swap_quote:
                print_quote(turn.swap_quote)
        else:
            print(f"\n🔔 {turn.text}")
        if turn.transaction:
            hex_bytes = turn.transaction.hex
            print(f"📝 Original query: {turn.transaction.original_query}")
            print(f"📊 Transaction bytes: {len(turn.transaction.payload)} bytes")
            for i in range(0, len(hex_bytes), 64):
                print(f"   {hex_bytes[i:i + 64]}")
            self._statuses[turn.id] = turn.transaction.status

    def _print_status_change(self, turn: Turn) -> None:
        if not turn.transaction:
            return
        previous = self._statuses.get(turn.id)
        status = turn.transaction.status
        if previous == status:
            return
        self._statuses[turn.id] = status
        if status is TransactionStatus.SUCCESS:
            print(f"\n✅ Transaction executed: {turn.transaction.transaction_id}")
        elif status is TransactionStatus.FAILED:
            print(f"\n❌ Transaction failed: {turn.transaction.failure_reason}")


def print_help() -> None:
    print("\nCommands:")
    print("  help                  - Show this help")
    print("  exit                  - Quit")
    print("  new                   - Start a new conversation")
    print("  list                  - List conversations")
    print("  select <n>            - Switch to conversation n from 'list'")
    print("  rename <title>        - Rename the current conversation")
    print("  delete                - Delete the current conversation")
    print("  switch account <id>   - Authenticate as another account")
    print("  balance | create token | create topic - Quick prompts")
    print("  Anything else is sent to the agent.")


async def cli_chat(url: Optional[str], account: str, sign_delay: float):
    """Interactive chat mode"""
    config = settings.model_copy(update={"ws_url": url}) if url else settings
    wallet = SimulatedWallet(account, delay=sign_delay)
    session = AgentSession(wallet, config=config)
    session.subscribe(TurnPrinter())
    session.on_connection_state(
        lambda state: print(f"{STATE_ICONS[state]} {state.value}" + (f" ({session.last_error})" if session.last_error else ""))
    )

    print("🤖 Hedron Agent Chat")
    print(f"📡 Connecting to {session.transport.url} as {account}...")
    print("Type 'help' for commands")
    print("-" * 40)

    await session.start()
    try:
        while True:
            try:
                user_input = (await asyncio.to_thread(input, "\n💬 You: ")).strip()
            except (EOFError, KeyboardInterrupt):
                print("\nGoodbye! 👋")
                break

            lowered = user_input.lower()
            if not user_input:
                continue
            if lowered in ["exit", "quit", "q"]:
                print("Goodbye! 👋")
                break
            if lowered in ["help", "h"]:
                print_help()
                continue
            if lowered == "new":
                session.create_conversation()
                print("🆕 New conversation")
                continue
            if lowered == "list":
                for i, conversation in enumerate(session.conversations, 1):
                    marker = "*" if conversation is session.current_conversation else " "
                    print(f"{marker}{i:2d}. {conversation.title} ({len(conversation.turns)} messages)")
                continue
            if lowered.startswith("select "):
                try:
                    index = int(user_input.split(maxsplit=1)[1]) - 1
                    if index < 0:
                        raise IndexError(index)
                    conversation = session.conversations[index]
                except (ValueError, IndexError):
                    print("❌ Unknown conversation number")
                    continue
                session.select_conversation(conversation.id)
                print(f"📂 {conversation.title}")
                continue
            if lowered.startswith("rename "):
                current = session.current_conversation
                if current is None:
                    print("❌ No conversation selected")
                    continue
                session.rename_conversation(current.id, user_input.split(maxsplit=1)[1])
                continue
            if lowered == "delete":
                current = session.current_conversation
                if current is not None:
                    session.delete_conversation(current.id)
                    print("🗑️  Conversation deleted")
                continue
            if lowered.startswith("switch account"):
                new_account = user_input[len("switch account"):].strip()
                if not new_account:
                    print("❌ Usage: switch account 0.0.123")
                    continue
                print(f"🔄 Switching to account: {new_account}")
                await session.switch_account(new_account)
                continue

            message = QUICK_COMMANDS.get(lowered, user_input)
            try:
                await session.send_user_message(message)
                print("⏳ Waiting for agent response...")
            except AuthError:
                print("⚠️  Please wait for authentication to complete before sending messages.")
            except TransportError as e:
                print(f"❌ {e}")
            except ConversationNotFoundError as e:
                print(f"❌ {e}")
    finally:
        await session.stop()


def cli_quote(text: str, network: str):
    """Run swap-quote extraction over a piece of agent text"""
    quote = SwapQuoteExtractor(network, default_fee=settings.default_swap_fee).extract(text)
    if quote is None:
        print("No swap quote found")
        return 1
    print_quote(quote)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Hedron Agent CLI")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command")

    chat_parser = subparsers.add_parser("chat", help="Interactive chat mode")
    chat_parser.add_argument("--url", default=None, help="Agent WebSocket URL (default: from environment)")
    chat_parser.add_argument(
        "--account",
        default=settings.user_account_id or "0.0.34567890",
        help="Hedera account id to authenticate as",
    )
    chat_parser.add_argument("--sign-delay", type=float, default=2.0, help="Seconds the simulated wallet takes to sign")

    quote_parser = subparsers.add_parser("quote", help="Extract a swap quote from agent text")
    quote_parser.add_argument("text", help="Agent reply text")
    quote_parser.add_argument("--network", default=settings.hedera_network, choices=["mainnet", "testnet"])

    return parser


async def main() -> int:
    parser = build_parser()
    args = parser.parse_args()

    setup_logging(args.log_level)

    if not args.command:
        parser.print_help()
        return 0

    command = args.command.lower()

    if command == "chat":
        await cli_chat(args.url, args.account, args.sign_delay)
        return 0

    if command == "quote":
        return cli_quote(args.text, args.network)

    print(f"❌ Unknown command: {command}")
    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
