"""reconf - terminal configuration editor for rEFInd-style boot managers, with plugins."""

__version__ = "1.0.0"
