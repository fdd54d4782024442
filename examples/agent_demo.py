"""
Simulation of an AI Agent using prodshell.

This demonstrates how `prodshell` sits between an agent and its shell.
The agent (simulated here) proposes commands; the engine validates each one
against the active level and only runs the accepted ones in the level's
persistent session.
"""

import asyncio
import logging
from dataclasses import dataclass

from prodshell import create_engine


@dataclass
class AgentAction:
    thought: str
    command: str
    level: int | None = None


class MockLLM:
    """Simulates an LLM acting on a user request."""

    def __init__(self):
        self.step = 0

    def next_action(self) -> AgentAction | None:
        """Returns the next command the 'AI' wants to run."""
        actions = [
            # Innocent exploration
            AgentAction(
                thought="I need to see what files are here.",
                command="ls -la"
            ),
            # Doing work (safe), state carries over to the next command
            AgentAction(
                thought="I'll make a notes folder and move into it.",
                command="mkdir -p notes && cd notes"
            ),
            AgentAction(
                thought="Let me write a todo list here.",
                command="echo 'ship it' > todo.txt && pwd"
            ),
            # MISTAKE (Dangerous!)
            AgentAction(
                thought="I should clean up everything.",
                command="rm -rf ."
            ),
            # Trying to leave the sandbox
            AgentAction(
                thought="There might be a flag one directory up.",
                command="cat ../../flag.txt"
            ),
            # Level 1 lets substitution through...
            AgentAction(
                thought="Maybe I can hide the dots.",
                command="cat $(printf '\\056\\056')/flag.txt"
            ),
            # ...Level 2 does not
            AgentAction(
                thought="Same trick, harder level.",
                command="cat $(printf '\\056\\056')/flag.txt",
                level=2,
            ),
        ]

        if self.step < len(actions):
            action = actions[self.step]
            self.step += 1
            return action
        return None


async def main():
    logging.basicConfig(level=logging.WARNING)
    print("🤖 Agent initializing...")
    print("🔒 prodshell active: commands confined to the level sandbox\n")

    llm = MockLLM()
    engine = await create_engine(base_dir="./workspace", files={"README.txt": "welcome\n"})

    try:
        while True:
            action = llm.next_action()
            if not action:
                print("✅ Agent finished task.")
                break

            if action.level is not None and await engine.switch_level(action.level):
                print(f"⬆️  Switched to Level {engine.level}")

            print(f"🤖 Thought: {action.thought}")
            print(f"  [Tool] Level {engine.level}: {action.command}")

            verdict = engine.validate(action.command)
            result = await engine.submit(action.command)
            output = result.as_text().strip() or "(no output)"

            if not verdict.valid:
                print(f"🛡️ PRODSHELL REFUSED: {verdict.reason}")
            else:
                print(f"  -> Result: {output.splitlines()[0]}...")
            print("-" * 50)
    finally:
        await engine.close()


if __name__ == "__main__":
    asyncio.run(main())
