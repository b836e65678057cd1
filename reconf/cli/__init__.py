"""Interactive terminal front end for reconf."""
