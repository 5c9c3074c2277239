"""Per-vehicle state containers.

Everything in this package may be touched from transport callbacks running
on foreign threads, so each container guards its own mutable state.
"""
