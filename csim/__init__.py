from .cache import Cache, CacheConfig, InvalidConfiguration, Outcome, Results, decompose
from .simulator import configure, process, processAll, simulate
from .trace import AccessEvent, AccessKind, TraceError, loadTrace, readTrace

__version__ = "0.1.0"
