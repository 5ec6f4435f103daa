"""sqlift - Generate typed CRUD data access code from a live database schema."""

__version__ = "0.1.0"
