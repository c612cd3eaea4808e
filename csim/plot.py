"""Compare csim runs.

Feed the summary lines printed by ``csim`` on stdin and name each run on
the command line::

    (csim -s 4 -E 1 -b 4 -t yi.trace; csim -s 4 -E 2 -b 4 -t yi.trace) | csim-plot 1-way 2-way
"""
import re

import click
import numpy as np
from matplotlib import pyplot as plt
from matplotlib.gridspec import GridSpec

SUMMARY = re.compile(r"hits:(\d+) misses:(\d+) evictions:(\d+)")

ROWS = ("Hits", "Misses", "Evictions")
COLORS = ("C0", "C4", "C7")


def parseSummaries(lines):
    """Collect the summary lines into an array of shape (runs, 3)."""
    counts = []
    for line in lines:
        match = SUMMARY.search(line)
        if match:
            counts.append([int(g) for g in match.groups()])
    if not counts:
        raise ValueError("no summary lines found")
    return np.asarray(counts)


def plotSummaries(counts, labels, barWidth=0.6):
    counts = np.asarray(counts)
    if len(labels) != counts.shape[0]:
        raise ValueError("got %d labels for %d runs" % (len(labels), counts.shape[0]))

    index = np.arange(counts.shape[0])
    fig = plt.figure()
    gs = GridSpec(len(ROWS), 1, figure=fig)

    for row, (name, color) in enumerate(zip(ROWS, COLORS)):
        ax = fig.add_subplot(gs[row, 0])
        ax.bar(index, counts[:, row], width=barWidth, color=color)
        ax.set_ylabel(name)
        ax.set_xticks(())

    ax.set_xticks(index)
    ax.set_xticklabels(labels)
    return fig


@click.command()
@click.option("-o", "--output", type=click.Path(dir_okay=False), help="Save the figure instead of showing it.")
@click.argument("labels", nargs=-1)
def main(output, labels):
    """Plot hits, misses and evictions of csim runs read from stdin."""
    try:
        counts = parseSummaries(click.get_text_stream("stdin"))
        if not labels:
            labels = [str(i) for i in range(1, counts.shape[0] + 1)]
        fig = plotSummaries(counts, labels)
    except ValueError as e:
        raise click.ClickException(str(e))

    if output:
        fig.savefig(output)
        plt.close(fig)
    else:
        plt.show()
