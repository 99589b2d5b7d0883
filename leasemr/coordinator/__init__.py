"""Coordinator side: task table, scheduler and HTTP surface."""
