"""Persistence layer: relational models and the spreadsheet document client."""
