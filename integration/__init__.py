"""Command-line shell around the triage core: config, logging, Rich output."""
