"""Adapters - infrastructure implementations of the domain ports."""
