"""Admission-outcome data agent: scrape, synthesize, verify."""

__version__ = "1.0.0"
