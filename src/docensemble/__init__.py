"""docensemble — dual-model document extraction with field-level consensus.

Runs a fast and an expert extraction model against the same document
pages and reconciles their records (invoices, bills, receipts, expenses)
into one result with an explicit conflict report.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("docensemble")
except PackageNotFoundError:
    # Fallback for source-only usage before installation.
    __version__ = "0.3.0"
__license__ = "Apache-2.0"
