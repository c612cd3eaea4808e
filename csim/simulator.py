import logging

from .cache import Cache, CacheConfig, decompose
from .trace import AccessKind

LOGGER = logging.getLogger("csim.simulator")


def configure(setBits, associativity, offsetBits):
    """Build an empty cache, raises InvalidConfiguration for an impossible shape."""
    return Cache(CacheConfig(setBits, associativity, offsetBits))


def process(cache, event, observer=None, count=True):
    """Replay one access event against the cache.

    Loads and stores touch the cache once. A modify is a load followed by a
    store to the same address, so it touches the cache twice and the second
    access always hits.

    Parameters
    ----------
    cache (Cache):
        The cache to update.
    event (AccessEvent):
        The access, ``event.kind`` may be an AccessKind or its trace letter.
    observer (callable):
        Called as ``observer(event, outcome)`` after every cache access (default None).
    count (bool):
        Whether the accesses are counted in the cache results (default True).

    Returns
    -------
    list of Outcome, one per cache access.
    """
    kind = AccessKind(event.kind)
    tag, setIndex = decompose(event.address, cache.setBits, cache.offsetBits)

    outcomes = [_access(cache, event, setIndex, tag, observer, count)]
    if kind is AccessKind.MODIFY:
        outcomes.append(_access(cache, event, setIndex, tag, observer, count))
    return outcomes


def _access(cache, event, setIndex, tag, observer, count):
    outcome = cache.access(setIndex, tag, count)
    if observer is not None:
        observer(event, outcome)
    return outcome


def processAll(cache, events, observer=None, warmup=0):
    """Replay events in order and return the cache results.

    The first ``warmup`` events update the cache without being counted.
    """
    LOGGER.info("simulating %d sets x %d lines, %d byte blocks",
                cache.nSets, cache.associativity, 1 << cache.offsetBits)
    n = 0
    for n, event in enumerate(events, 1):
        process(cache, event, observer, count=n > warmup)
    LOGGER.info("processed %d accesses (%d warm-up): %s", n, min(n, warmup), cache.results.summary())
    return cache.results


def simulate(config, events, observer=None, warmup=0):
    with Cache(config) as cache:
        return processAll(cache, events, observer, warmup)
