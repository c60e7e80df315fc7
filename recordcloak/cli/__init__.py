"""Command line interface for RecordCloak."""
