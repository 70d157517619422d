"""CLI entry point for the inbox task viewer."""

import logging

import click
from dotenv import load_dotenv

from inbox_tasks.config import InboxConfig

logger = logging.getLogger(__name__)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log progress at INFO level.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Inbox viewer that flags emails that look like tasks."""
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )
    ctx.obj = InboxConfig.from_env()


# Import and register commands after cli is defined to avoid circular imports.
from inbox_tasks.cli.commands import browse, show, watch  # noqa: E402

cli.add_command(show)
cli.add_command(browse)
cli.add_command(watch)
