"""
Image Optimizer — recompress media in place with backups and a size ledger.

Optimize and revert single image assets, keep the pristine original in a
sidecar backup, and record before/after sizes per asset.
"""

__version__ = "0.1.0"
