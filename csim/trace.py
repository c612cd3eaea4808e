"""Reader for valgrind lackey memory traces.

Each data access is one line of the form ``<op> <hex address>,<size>``
where ``op`` is ``L`` (load), ``S`` (store) or ``M`` (modify). Instruction
fetches (``I``) are dropped here and never reach the cache.
"""
import enum
import logging
from collections import namedtuple

from .cache import ADDRESS_MASK

LOGGER = logging.getLogger("csim.trace")


class AccessKind(enum.Enum):
    LOAD = "L"
    STORE = "S"
    MODIFY = "M"


AccessEvent = namedtuple("AccessEvent", "kind address size lineno", defaults=(0, 0))


class TraceError(ValueError):

    def __init__(self, lineno, message):
        super().__init__("line %d: %s" % (lineno, message))
        self.lineno = lineno


def parseLine(line, lineno=0):
    """Parse one trace line, returns None for blank lines and instruction fetches."""
    text = line.strip()
    if not text:
        return None
    op, _, rest = text.partition(" ")
    if op == "I":
        return None
    try:
        kind = AccessKind(op)
    except ValueError:
        raise TraceError(lineno, "unknown operation %r" % op) from None

    addressText, _, sizeText = rest.strip().partition(",")
    try:
        address = int(addressText, 16)
    except ValueError:
        raise TraceError(lineno, "bad address %r" % addressText) from None
    if address < 0 or address > ADDRESS_MASK:
        raise TraceError(lineno, "address %r is not an unsigned 64 bit value" % addressText)

    size = 0
    if sizeText.strip():
        try:
            size = int(sizeText)
        except ValueError:
            raise TraceError(lineno, "bad size %r" % sizeText.strip()) from None
        if size < 0:
            raise TraceError(lineno, "negative size %d" % size)
    return AccessEvent(kind, address, size, lineno)


def readTrace(lines, skip=0, limit=-1):
    """Yield the data accesses of a trace in order.

    Parameters
    ----------
    lines (iterable of str):
        The trace text, one record per item.
    skip (int):
        Number of data accesses to drop from the start (default 0).
    limit (int):
        Maximum number of accesses to yield after skipping, negative for all (default -1).
    """
    if limit == 0:
        return
    seen = 0
    emitted = 0
    for lineno, line in enumerate(lines, 1):
        event = parseLine(line, lineno)
        if event is None:
            continue
        seen += 1
        if seen <= skip:
            continue
        yield event
        emitted += 1
        if emitted == limit:
            return


def loadTrace(path, skip=0, limit=-1):
    with open(path) as f:
        events = list(readTrace(f, skip, limit))
    LOGGER.debug("read %d accesses from %s", len(events), path)
    return events
