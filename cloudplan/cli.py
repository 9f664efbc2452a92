# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


import argparse
import sys
import traceback
from argparse import Namespace
from copy import deepcopy

from cloudplan import __version__
from cloudplan.event_buffer import EventBuffer
from cloudplan.scheduling import PowerDatacenter, get_builtin_topologies
from cloudplan.utils import LogFormat, Logger, set_internal_stdout_level
from cloudplan.utils.exception import CloudPlanException
from cloudplan.utils.exception.cli_exception import CliError, CommandError

CLOUDPLAN_BANNER = """
Power-aware VM placement and migration planning.

Use `cloudplan --version` to get the current version.
"""

logger = Logger(tag="cli", format_=LogFormat.cli_info, stdout_level="INFO")


class ArgumentParser(argparse.ArgumentParser):
    def __init__(self, **kwargs):
        super().__init__(add_help=False, **kwargs)

        self.formatter_class = argparse.RawTextHelpFormatter

    def error(self, message):
        """Print the help for ``-h``, raise a ``CommandError`` for anything else argparse rejects."""
        if '--help' in sys.argv or '-h' in sys.argv:
            self.print_help()
            sys.exit(0)

        raise CommandError(cli_command=self.prog, message=f"{message}\n{self.format_usage()}")


def main(argv: list = None):
    global_parser = ArgumentParser()
    global_parser.add_argument("--debug", action='store_true', help="Enable debug mode")
    global_parser.add_argument("-h", "--help", action='store_true', help="Show this message and exit")

    parser = ArgumentParser(prog='cloudplan', description=CLOUDPLAN_BANNER, parents=[global_parser])
    parser.set_defaults(func=_help_func(parser=parser))
    parser.add_argument('--version', action='store_true', help='Get version info')
    subparsers = parser.add_subparsers()

    # cloudplan run -t topology -d durations [--record_path events.csv]
    parser_run = subparsers.add_parser(
        'run',
        help='Run a datacenter topology to the end and show the metrics and the finished migrations.',
        parents=[global_parser]
    )
    parser_run.add_argument('-t', '--topology', required=True, help='Built-in topology name or topology folder.')
    parser_run.add_argument('-d', '--durations', type=int, required=True, help='Ticks to run.')
    parser_run.add_argument('-s', '--simulation_id', type=int, default=0, help='Id stamped on the migrations.')
    parser_run.add_argument('--record_path', default=None, help='CSV file to record the executed events.')
    parser_run.set_defaults(func=run)

    # cloudplan topologies
    parser_topologies = subparsers.add_parser(
        'topologies',
        help='List built-in topologies.',
        parents=[global_parser]
    )
    parser_topologies.set_defaults(func=list_topologies)

    args = None
    try:
        # Get args and parse global arguments
        args = parser.parse_args(argv)
        if args.debug:
            logger.set_stdout_level("DEBUG")
            set_internal_stdout_level("DEBUG")
        if args.help:
            parser.print_help()
            return
        if getattr(args, "version", False):
            logger.info(f'{__version__}')
            return

        actual_args = _get_actual_args(namespace=args)

        # WARNING: We cannot assign any argument like 'func' in the CLI
        args.func(**actual_args)
    except CliError as e:
        if args is None or args.debug:
            logger.error(f"{e.__class__.__name__}: {e.get_message()}\n{traceback.format_exc()}")
        else:
            logger.error(f"{e.__class__.__name__}: {e.get_message()}")
        sys.exit(1)
    except CloudPlanException as e:
        if args is not None and args.debug:
            logger.error(f"{e.__class__.__name__}: {e}\n{traceback.format_exc()}")
        else:
            logger.error(f"{e.__class__.__name__}: {e}")
        sys.exit(1)


def run(topology: str, durations: int, simulation_id: int = 0, record_path: str = None, **kwargs):
    """Run the datacenter of the topology for the given ticks, recording the executed events if a path is given."""
    if durations <= 0:
        raise CommandError(cli_command="run", message="durations must be positive.")

    event_buffer = EventBuffer(record_events=record_path is not None, record_path=record_path)
    try:
        datacenter = PowerDatacenter(
            event_buffer=event_buffer, topology=topology, simulation_id=simulation_id, start_tick=0, max_tick=durations
        )
        metrics = datacenter.run_to_end()
    finally:
        event_buffer.close()

    logger.info(f"Datacenter: {datacenter.name}, hosts: {len(datacenter.hosts)}, vms: {len(datacenter.vms)}")
    for key in metrics:
        logger.info(f"{key}: {metrics[key]}")

    for migration in datacenter.finished_migrations:
        logger.info(
            f"[{migration.start_tick} -> {migration.finish_tick}] {migration.vm_label}: "
            f"{migration.source_host_label} -> {migration.target_host_label} ({migration.reason.value})"
        )


def list_topologies(**kwargs):
    """Show built-in topologies."""
    for topology in get_builtin_topologies():
        logger.info(topology)


def _help_func(parser):
    def wrapper(*args, **kwargs):
        parser.print_help()

    return wrapper


def _get_actual_args(namespace: Namespace) -> dict:
    actual_args = vars(deepcopy(namespace))
    return actual_args


if __name__ == '__main__':
    main()
