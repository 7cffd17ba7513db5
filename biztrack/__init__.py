"""
BizTrack - Source Package

Bookkeeping core for a small online business: inventory, sales,
expenses and contacts, with profit metrics derived from them.

DESIGN PRINCIPLES:
1. A sale and its stock movement are recorded together or not at all
2. Financial snapshots are captured at transaction time
3. Metrics are projections, never stored state
4. Every mutation is logged
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "BizTrack Team"
