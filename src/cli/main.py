"""focus: pick the task to work on right now."""

import click

from cli.commands import estimate, feedback, history, rank, recommend
from cli.config import load_config_model
from cli.logging_config import setup_logging


@click.group()
@click.version_option(version="0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON")
def cli(verbose: bool, json_logs: bool):
    """focus - task prioritization from the current moment."""
    try:
        config = load_config_model()
    except ValueError:
        # reported properly once a command loads its components
        config = None
    level = "DEBUG" if verbose else (config.logging.level if config else "WARNING")
    json_mode = json_logs or (config.logging.json_mode if config else False)
    log_file = config.paths.log_file if config else None
    setup_logging(json_mode=json_mode, level=level, log_file=log_file)


cli.add_command(recommend)
cli.add_command(estimate)
cli.add_command(rank)
cli.add_command(feedback)
cli.add_command(history)


if __name__ == "__main__":
    cli()
