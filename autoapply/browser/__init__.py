"""Playwright-driven apply flows: Easy Apply modals and external application sites."""
