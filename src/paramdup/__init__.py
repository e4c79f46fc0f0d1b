"""paramdup package root."""

from paramdup.exceptions import NeverRaise, NeverThrown
from paramdup.invariants import never

__all__ = ["__version__", "NeverRaise", "NeverThrown", "never"]

__version__ = "0.1.0"
