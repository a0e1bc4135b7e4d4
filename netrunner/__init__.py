"""
Netrunner stat and action economy engine.

Derived stats from attributes and equipment, fixed-tick pool regeneration,
bandwidth-gated timed actions and probabilistic outcome resolution, run
against an injected store.
"""

__version__ = "0.1.0"
