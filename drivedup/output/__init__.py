# drivedup Output Module
# Rich console output

from drivedup.output.console import Console

__all__ = [
    "Console",
]
