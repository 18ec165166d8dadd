"""
Chat with a model while the dialog history is compacted into summaries.

Commands inside the chat:
    /state          Show raw turns and summaries kept so far
    /compare [id]   Replay a scripted scenario with and without compaction
    /scenarios      List scripted scenarios
    /reset          Forget the conversation
    quit / exit     End the session

Run with:
    python main.py

Environment variables:
    OPENAI_API_KEY - Your OpenAI API key (required for the openai provider)
    CONDENSE_CONFIG - Path to a YAML config (default: compression.yaml next to this file)
    CONDENSE_MODEL - Override the chat model
"""

import asyncio
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from condense import DialogSession, get_provider, load_config

load_dotenv()

CONFIG_PATH = Path(__file__).with_name("compression.yaml")


def print_metrics(metrics):
    usage = metrics.token_usage
    print(f"Assistant: {metrics.answer}")
    print(
        f"  [prompt={usage.prompt_tokens} completion={usage.completion_tokens} "
        f"raw_turns={metrics.raw_turn_count} summaries={len(metrics.summaries)} "
        f"policy={metrics.policy}]"
    )
    if usage.tokens_saved:
        print(
            f"  [full history would cost ~{usage.hypothetical_prompt_tokens} tokens, "
            f"saved ~{usage.tokens_saved}]"
        )


async def print_state(session: DialogSession):
    state = await session.get_state()
    print(f"Turns: {len(state.turns)}")
    for turn in state.turns:
        marker = "*" if turn.summarized else " "
        print(f" {marker} {turn.role.value:9} {turn.content[:70]}")
    print(f"Summaries: {len(state.summaries)}")
    for summary in state.summaries:
        print(f"  - {summary.summary_text}")
        for fact in summary.facts:
            print(f"      fact: {fact}")


async def compare(session: DialogSession, scenario_id: str | None):
    scenario_id = scenario_id or session.config.compaction.default_scenario_id
    if not scenario_id:
        print("No scenario given and no defaultScenarioId configured.")
        return

    print(f"Replaying scenario '{scenario_id}' twice, this calls the model for every message...")
    report = await session.run_comparison_scenario(scenario_id)
    print()
    print(report.narrative_text)
    print(f"  with compaction:    {report.with_compression.quality_notes}")
    print(f"  without compaction: {report.without_compression.quality_notes}")


async def chat_loop():
    """Run an interactive chat loop backed by a compacting dialog session."""
    config = load_config(os.getenv("CONDENSE_CONFIG", CONFIG_PATH))
    provider = get_provider(config.model.provider)
    session = DialogSession(provider, config)

    print("=" * 60)
    print("Dialog Compression")
    print("=" * 60)
    print(f"Session ID: {session.session_id}")
    print(
        f"Summary every {config.compaction.summary_interval} user messages, "
        f"keeping the last {config.compaction.raw_history_limit} turns raw."
    )
    print("Type '/compare', '/state', '/reset', or 'quit'.")
    print("=" * 60)
    print()

    while True:
        try:
            user_input = input("You: ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nGoodbye!")
            break

        if not user_input:
            continue

        if user_input.lower() in ("quit", "exit"):
            print("Goodbye!")
            break

        try:
            if user_input == "/state":
                await print_state(session)
            elif user_input == "/reset":
                await session.reset()
                print("Conversation cleared.")
            elif user_input == "/scenarios":
                for info in session.list_scenarios():
                    print(f"  {info.id} ({info.messages_count} messages): {info.description}")
            elif user_input.startswith("/compare"):
                parts = user_input.split(maxsplit=1)
                await compare(session, parts[1] if len(parts) > 1 else None)
            else:
                print_metrics(await session.handle_message(user_input))
        except Exception as e:
            print(f"\nError: {e}")
        print()


async def main():
    """Main entry point."""
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "WARNING"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    await chat_loop()


if __name__ == "__main__":
    asyncio.run(main())
