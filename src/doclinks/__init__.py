"""Doc-comment broken link lint."""

from doclinks.exceptions import DoclinksError, NeverThrown
from doclinks.invariants import never

__all__ = ["__version__", "DoclinksError", "NeverThrown", "never"]

__version__ = "0.1.0"
