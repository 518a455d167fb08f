"""Console notification adapter."""

from datetime import datetime
from typing import Callable

import click


class ConsoleNotifier:
    """
    Prints reminders to the terminal.

    Implements Notifier protocol. An optional callback runs after each
    notification, e.g. to let a waiting CLI command exit.
    """

    def __init__(self, on_notify: Callable[[], None] | None = None):
        self.on_notify = on_notify

    def notify(self, title: str, message: str) -> None:
        stamp = datetime.now().strftime("%H:%M")
        click.echo("\a", nl=False)
        click.secho(f"[{stamp}] {title}", bold=True)
        click.echo(message)
        if self.on_notify:
            self.on_notify()
