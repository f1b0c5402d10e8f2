"""Pydantic data model for profiles, rules, results, and reference data."""
