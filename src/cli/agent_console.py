#!/usr/bin/env python3
"""Listing hand-off console - keyboard-driven operator workflow."""

import asyncio
import sys

from src.application.workflow.controller import ActionResult, WorkflowController
from src.config import settings
from src.domain.enums.workflow_step import WorkflowStep
from src.infrastructure.messaging.factory import build_event_publisher
from src.infrastructure.session.identity_store import FileSessionIdentityStore
from src.infrastructure.store.factory import build_item_store
from src.logging_setup import configure_logging

# Colors for output
RED = "\033[0;31m"
GREEN = "\033[0;32m"
BLUE = "\033[0;34m"
YELLOW = "\033[1;33m"
NC = "\033[0m"  # No Color

# Typed aliases for keys a line-based terminal cannot send
KEY_ALIASES = {"j": "arrowdown", "k": "arrowup"}
QUIT_KEYS = {"q", "quit", "exit"}


def print_output(text: str) -> bool:
    """Output sink for copy actions: the operator pastes from the terminal."""
    print(f"{BLUE}----- copy below -----{NC}")
    print(text)
    print(f"{BLUE}----------------------{NC}")
    return True


async def prompt_reference() -> str | None:
    try:
        value = await asyncio.to_thread(input, f"{YELLOW}Vinted URL (empty clears): {NC}")
    except EOFError:
        return None
    return value.strip()


def show_notice(result: ActionResult | None) -> None:
    if result is None:
        return
    color = GREEN if result.ok else RED
    print(f"{color}>> {result.message}{NC}")


def show_screen(controller: WorkflowController) -> None:
    """Display the queue, the selected item and the step checklist."""
    snapshot = controller.snapshot
    print()
    print(f"{BLUE}╔════════════════════════════════════════╗{NC}")
    print(f"{BLUE}║        Listing Hand-off Console        ║{NC}")
    print(f"{BLUE}╚════════════════════════════════════════╝{NC}")
    print(f"Session: {controller.session_id}")
    if controller.stale:
        print(f"{YELLOW}⚠ Queue is stale - press r to retry{NC}")
    print()

    if not snapshot.items:
        print(f"{YELLOW}Queue is empty.{NC}")
    for index, item in enumerate(snapshot.items):
        marker = ">" if index == controller.selected_index else " "
        print(f"{marker} {index + 1:>3}. [{item.kind.value:<6}] {item.status.value:<10} {item.title}")

    item = controller.selected
    if item is None:
        return

    print()
    print(f"{GREEN}{item.title}{NC}")
    print(f"Price: {item.price if item.price is not None else '-'} {settings.currency}")
    print(f"Photos: {len(item.photos)}   URL: {item.external_reference or '-'}")
    print()
    for step in WorkflowStep:
        if step < controller.cursor:
            mark = f"{GREEN}✓{NC}"
        elif step == controller.cursor:
            mark = f"{YELLOW}▶{NC}"
        else:
            mark = " "
        print(f" {mark} {int(step)}. {step.label}")

    enabled = controller.enabled_actions
    print()
    print(
        f"{GREEN}s{NC}) start{'' if enabled.start_run else ' (off)'}  "
        f"{GREEN}1-4{NC}) copy fields  {GREEN}5{NC}) copy all  {GREEN}u{NC}) url  "
        f"{GREEN}d{NC}) draft{'' if enabled.mark_draft else ' (off)'}  "
        f"{GREEN}p{NC}) publish{'' if enabled.mark_published else ' (off)'}  "
        f"{GREEN}e{NC}) error  {GREEN}n/j/k{NC}) move  {GREEN}r{NC}) refresh  {GREEN}q{NC}) quit"
    )


async def run_console() -> None:
    session_id = FileSessionIdentityStore().ensure_session_id()
    controller = WorkflowController(
        store=build_item_store(),
        event_publisher=build_event_publisher(),
        session_id=session_id,
        output=print_output,
        reference_prompt=prompt_reference,
    )
    commands = controller.bind_keys()

    with commands.attached():
        show_notice(await controller.refresh())
        while True:
            show_screen(controller)
            try:
                raw = await asyncio.to_thread(input, f"{YELLOW}key> {NC}")
            except EOFError:
                break

            key = raw.strip().lower()
            if key in QUIT_KEYS:
                break
            if not key:
                continue

            key = KEY_ALIASES.get(key, key)
            if key not in commands.keys:
                print(f"{RED}Unknown key: {key}{NC}")
                continue
            show_notice(await commands.dispatch(key))

    print(f"{GREEN}Goodbye!{NC}")


def main():
    """Console entry point."""
    configure_logging(settings.log_level)
    try:
        asyncio.run(run_console())
    except KeyboardInterrupt:
        print(f"\n{YELLOW}Interrupted by user{NC}")
        sys.exit(0)


if __name__ == "__main__":
    main()
