"""Shared constants, errors, configuration and logging for teamcity-dl."""
