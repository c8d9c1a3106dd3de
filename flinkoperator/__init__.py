"""Flink application settings, flink-conf rendering, job manager client and retry handling."""

__version__ = "0.1.0"