import enum
import logging
from collections import namedtuple

LOGGER = logging.getLogger("csim.cache")

ADDRESS_BITS = 64
ADDRESS_MASK = (1 << ADDRESS_BITS) - 1


class InvalidConfiguration(ValueError):
    """Raised when a cache shape cannot be simulated."""


class Outcome(enum.Enum):
    """Result of a single cache access.

    The values are the words printed in verbose traces.
    """
    HIT = "hit"
    MISS = "miss"
    EVICTION = "miss eviction"


class CacheConfig(namedtuple("CacheConfig", "setBits associativity offsetBits")):
    """Shape of a simulated cache.

    Parameters
    ----------

    setBits (int):
        Number of set index bits, the cache has 2**setBits sets.
    associativity (int):
        Number of lines per set, at least 1.
    offsetBits (int):
        Number of block offset bits, the block size is 2**offsetBits bytes.
    """
    __slots__ = ()

    def __new__(cls, setBits, associativity, offsetBits):
        for name, value in (("setBits", setBits), ("associativity", associativity), ("offsetBits", offsetBits)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidConfiguration("%s must be an integer, got %r" % (name, value))
        if setBits < 0:
            raise InvalidConfiguration("setBits must be >= 0, got %d" % setBits)
        if offsetBits < 0:
            raise InvalidConfiguration("offsetBits must be >= 0, got %d" % offsetBits)
        if associativity < 1:
            raise InvalidConfiguration("associativity must be >= 1, got %d" % associativity)
        return super().__new__(cls, setBits, associativity, offsetBits)

    @property
    def nSets(self):
        return 1 << self.setBits


def decompose(address, setBits, offsetBits):
    """Split an address into ``(tag, setIndex)``.

    The address is treated as an unsigned 64 bit value. Once the set and
    offset bits cover the whole address the tag is 0.
    """
    address &= ADDRESS_MASK
    if offsetBits >= ADDRESS_BITS:
        return 0, 0
    setIndex = (address >> offsetBits) & ((1 << setBits) - 1)
    if setBits + offsetBits >= ADDRESS_BITS:
        return 0, setIndex
    tag = address >> (setBits + offsetBits)
    return tag, setIndex


class Line:
    __slots__ = ("valid", "tag", "lastAccess")

    def __init__(self):
        self.valid = False
        self.tag = 0
        self.lastAccess = 0

    def __repr__(self):
        if not self.valid:
            return "Line(invalid)"
        return "Line(tag=%#x, lastAccess=%d)" % (self.tag, self.lastAccess)


class Results:
    """Hit, miss and eviction counters of a simulation run."""

    def __init__(self, hits=0, misses=0, evictions=0):
        self.hits = hits
        self.misses = misses
        self.evictions = evictions

    def hitRate(self):
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def summary(self):
        return "hits:%d misses:%d evictions:%d" % (self.hits, self.misses, self.evictions)

    def __eq__(self, other):
        if not isinstance(other, Results):
            return NotImplemented
        return (self.hits, self.misses, self.evictions) == (other.hits, other.misses, other.evictions)

    def __repr__(self):
        return "Results(hits=%d, misses=%d, evictions=%d)" % (self.hits, self.misses, self.evictions)


class Cache:

    def __init__(self, config):
        """Set associative cache with LRU replacement.

        Only metadata is simulated: each line keeps its valid bit, its tag
        and the value of the access counter when it was last touched.

        Parameters
        ----------

        config (CacheConfig):
            Shape of the cache (set bits, associativity, offset bits).
        """
        self.config = config
        self.setBits = config.setBits
        self.offsetBits = config.offsetBits
        self.associativity = config.associativity
        self.nSets = config.nSets

        self.sets = [[Line() for i in range(self.associativity)] for j in range(self.nSets)]

        self.counter = 0
        self.results = Results()
        LOGGER.debug("allocated %d sets of %d lines", self.nSets, self.associativity)

    @property
    def closed(self):
        return self.sets is None

    def close(self):
        """Release the sets, the cache cannot be accessed afterwards."""
        if self.sets is not None:
            self.sets = None
            LOGGER.debug("released %d sets", self.nSets)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def lines(self, setIndex):
        if self.sets is None:
            raise RuntimeError("cache has been closed")
        if not 0 <= setIndex < self.nSets:
            raise IndexError("set index %d out of range for %d sets" % (setIndex, self.nSets))
        return self.sets[setIndex]

    def access(self, setIndex, tag, count=True):
        """Access a block given its set index and tag.

        Parameters
        ----------
        setIndex (int):
            The set the block maps to.
        tag (int):
            The tag of the block.
        count (bool):
            Whether hits, misses and evictions should be counted (default is True).
            The replacement state is updated either way.

        Returns
        -------
        Outcome
        """
        lines = self.lines(setIndex)

        for way, line in enumerate(lines):
            if line.valid and line.tag == tag:
                if count:
                    self.results.hits += 1
                self.accessDirect(setIndex, way)
                return Outcome.HIT

        if count:
            self.results.misses += 1

        for way, line in enumerate(lines):
            if not line.valid:
                line.valid = True
                line.tag = tag
                self.accessDirect(setIndex, way)
                return Outcome.MISS

        if count:
            self.results.evictions += 1
        way = self.selectVictim(setIndex)
        LOGGER.debug("set %d: evicting tag %#x from way %d", setIndex, lines[way].tag, way)
        lines[way].tag = tag
        self.accessDirect(setIndex, way)
        return Outcome.EVICTION

    def accessDirect(self, setIndex, way):
        self.counter += 1
        self.lines(setIndex)[way].lastAccess = self.counter

    def selectVictim(self, setIndex):
        """Return the way holding the least recently used line of a full set."""
        lines = self.lines(setIndex)
        way = 0
        for i, line in enumerate(lines):
            if line.lastAccess < lines[way].lastAccess:
                way = i
        return way

    def validLines(self, setIndex):
        return [line for line in self.lines(setIndex) if line.valid]
