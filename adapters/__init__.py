"""Adapters connecting the intelligence core to external collaborators."""
