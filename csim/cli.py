import logging

import click

from .cache import CacheConfig, InvalidConfiguration
from .simulator import simulate
from .trace import TraceError, loadTrace

EXAMPLES = """\b
Examples:
  csim -s 4 -E 1 -b 4 -t traces/yi.trace
  csim -v -s 8 -E 2 -b 4 -t traces/yi.trace
"""


def printAccess(event, outcome):
    click.echo("%s %x,%d %s" % (event.kind.value, event.address, event.size, outcome.value))


@click.command(epilog=EXAMPLES, context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-v", "verbose", is_flag=True, help="Print the outcome of every cache access.")
@click.option("-s", "setBits", type=int, required=True, metavar="<num>", help="Number of set index bits.")
@click.option("-E", "associativity", type=int, required=True, metavar="<num>", help="Number of lines per set.")
@click.option("-b", "offsetBits", type=int, required=True, metavar="<num>", help="Number of block offset bits.")
@click.option("-t", "traceFile", type=click.Path(exists=True, dir_okay=False), required=True,
              metavar="<file>", help="Trace file.")
@click.option("--skip", default=0, type=click.IntRange(min=0), help="Accesses to drop from the start of the trace.")
@click.option("--warmup", default=0, type=click.IntRange(min=0), help="Accesses replayed before counting starts.")
@click.option("--limit", default=-1, type=int, help="Accesses to replay after skipping, -1 for all.")
@click.option("--debug", is_flag=True, help="Log simulator internals to stderr.")
def main(verbose, setBits, associativity, offsetBits, traceFile, skip, warmup, limit, debug):
    """Simulate an LRU set associative cache on a valgrind memory trace."""
    logging.basicConfig(level=logging.DEBUG if debug else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    try:
        config = CacheConfig(setBits, associativity, offsetBits)
    except InvalidConfiguration as e:
        raise click.ClickException(str(e))

    try:
        events = loadTrace(traceFile, skip=skip, limit=limit)
    except TraceError as e:
        raise click.ClickException("%s: %s" % (traceFile, e))
    except OSError as e:
        raise click.ClickException("%s: %s" % (traceFile, e.strerror))

    results = simulate(config, events, printAccess if verbose else None, warmup=warmup)
    click.echo(results.summary())
