"""State layer.

The tree, the subscription registry, the transaction buffer and the async
task manager.  Only :mod:`pathstate.store` wires them together; nothing in
this package checks whether the owning store has been destroyed.
"""
