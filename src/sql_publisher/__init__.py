"""SQL Publisher - poll a SQL query and publish the rows as JSON documents."""

from sql_publisher.__about__ import __version__

__all__ = ["__version__"]
