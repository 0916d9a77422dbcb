#!/usr/bin/env python3
"""
Main entry point for teamcity-dl when run as a module.

This allows the package to be executed with: python -m teamcity_dl
"""

from .cli import main

if __name__ == '__main__':
    main()
