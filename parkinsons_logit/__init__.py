"""
Parkinson's Voice Logit Analysis - Source Package
"""

from . import config
from . import exceptions

# Subpackages
from . import data
from . import models
from . import evaluation
from . import visualization

# Standalone modules
from . import exploration
from . import diagnostics
from . import analysis
from . import report

__all__ = [
    # Core
    'config',
    'exceptions',
    # Subpackages
    'data',
    'models',
    'evaluation',
    'visualization',
    # Standalone modules
    'exploration',
    'diagnostics',
    'analysis',
    'report',
]
