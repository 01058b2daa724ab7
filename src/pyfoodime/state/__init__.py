"""State/store layer.

This package is the single source of truth for how snapshots, realtime
deltas and optimistic status transitions are merged into one
deterministic table of orders.
"""
