"""Sentinel-2 thumbnail preview service.

HTTP service that accepts a polygon, finds the least-cloudy Sentinel-2
scene over it, and hands back a rendered true-colour thumbnail URL.
Fetches run in the background; clients poll a single job slot for the
outcome.
"""

__version__ = "0.1.0"
