from .log import log
from .prepare import prepare
from .triplet import triplet
from .version import version
