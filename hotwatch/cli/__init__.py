"""Command line interface for hotwatch."""
import logging

import click

from hotwatch import __version__
from hotwatch.config import Config
from hotwatch.debounce import QUIET_PERIOD
from hotwatch.supervisor import DEFAULT_GRACE_PERIOD

from typing import Optional, Tuple


USAGE = ('Usage: hotwatch [OPTIONS] <directory_to_watch> <command_to_run> '
         '[exclude_prefix]...')


def _configure_logging(debug: bool) -> None:
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(name)s [%(levelname)s] %(message)s')


@click.command()
@click.argument('directory', required=False)
@click.argument('command', required=False)
@click.argument('exclude_prefixes', nargs=-1)
@click.option('--quiet-period', type=float, default=QUIET_PERIOD,
              envvar='HOTWATCH_QUIET_PERIOD', show_default=True,
              help='Seconds without changes before the command restarts.')
@click.option('--grace-period', type=float, default=DEFAULT_GRACE_PERIOD,
              envvar='HOTWATCH_GRACE_PERIOD', show_default=True,
              help='Seconds to wait after SIGINT on shutdown before '
                   'killing the command.')
@click.option('--debug/--no-debug', default=False,
              envvar='HOTWATCH_DEBUG',
              help='Print debug logs to stderr.')
@click.version_option(version=__version__, message='%(prog)s %(version)s')
@click.pass_context
def cli(ctx: click.Context, directory: Optional[str],
        command: Optional[str], exclude_prefixes: Tuple[str, ...],
        quiet_period: float, grace_period: float, debug: bool) -> None:
    """Run COMMAND and restart it when files under DIRECTORY change.

    Paths starting with any EXCLUDE_PREFIX are neither watched nor
    trigger restarts.
    """
    if not directory or not command:
        click.echo(USAGE, err=True)
        ctx.exit(1)
    _configure_logging(debug)
    # Imported here so that --help and usage errors do not pull in
    # watchdog.
    from hotwatch.cli.reloader import Reloader
    config = Config.create(
        watch_root=directory,
        command=command,
        exclude_prefixes=exclude_prefixes,
        quiet_period=quiet_period,
        grace_period=grace_period,
    )
    rc = Reloader(config).main()
    ctx.exit(rc)


def main() -> None:
    cli(obj={})
