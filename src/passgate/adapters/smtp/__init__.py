"""Notifier adapters - outbound delivery of passcodes and reset tokens."""

from .console import ConsoleNotifier

__all__ = ["ConsoleNotifier"]
