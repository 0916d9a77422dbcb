"""Fetch and extraction logic behind the teamcity-dl CLI."""
