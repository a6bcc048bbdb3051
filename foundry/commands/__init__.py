"""CLI command definitions for foundry."""

import click

from foundry import __version__, setup_logging
from foundry.paths import get_config_path, get_log_path

from .component import component
from .stack import stack
from .utils import EXIT_AT_CHECKPOINT_ENV


@click.group()
@click.version_option(__version__, prog_name="foundry")
@click.option("--debug", is_flag=True, help="Enable debug output for troubleshooting")
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False),
    help="Stack config file (default: $FOUNDRY_CONFIG or ~/.foundry/stack.yaml)",
)
@click.option("--log-file", is_flag=True, help="Also write a log to ~/.foundry/logs/foundry.log")
@click.pass_context
def cli(ctx, debug: bool, config_file: str | None, log_file: bool):
    """Install and manage an infrastructure stack."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = get_config_path(config_file)
    setup_logging(debug, get_log_path() if log_file else None)


cli.add_command(stack)
cli.add_command(component)

__all__ = ["cli", "EXIT_AT_CHECKPOINT_ENV"]


if __name__ == "__main__":
    cli()
