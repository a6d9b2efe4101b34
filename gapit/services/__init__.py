"""Stateful services: per-node caches, schedules, polling nodes and the runner."""
