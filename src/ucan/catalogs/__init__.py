"""External catalog clients."""

from ucan.catalogs.aavso import AAVSOClient, select_candidates, ephemeris_url

__all__ = ['AAVSOClient', 'select_candidates', 'ephemeris_url']
