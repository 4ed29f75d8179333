"""Command line interface for tagquery."""
