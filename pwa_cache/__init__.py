"""
Partial wave analysis amplitudes with incremental recalculation

"""
import logging

from .version import __version__

logging.getLogger(__name__).addHandler(logging.NullHandler())
