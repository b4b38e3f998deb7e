"""Interactive Area-of-Interest (AOI) manager.

Keeps a permit application's project boundary, location marker, coordinate
fields and derived administrative context (province, district, LLG, area)
consistent while the user draws, uploads, drags and hovers on a map.
"""

__version__ = "0.1.0"
