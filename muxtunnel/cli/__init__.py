# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""muxtunnel CLI package."""

import click

from muxtunnel import __version__
from muxtunnel.utils.logging import configure_logging, log_startup_info


@click.group()
@click.version_option(version=__version__, prog_name="muxtunnel")
@click.option("--debug", is_flag=True, help="Verbose output, including ssh command lines.")
@click.option("--quiet", "-q", is_flag=True, help="Only print results and errors.")
def cli(debug: bool, quiet: bool):
    """muxtunnel - SSH port forwards over a shared ControlMaster connection."""
    configure_logging(debug=debug, quiet=quiet, force=True)
    log_startup_info()


from muxtunnel.cli.commands import tunnel  # noqa: E402,F401


def main():
    cli()


if __name__ == "__main__":
    main()
