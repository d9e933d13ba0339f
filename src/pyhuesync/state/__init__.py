"""State layer.

The light registry, the subscription table, and the two components that
move data between them: the poll reconciler (bridge -> records) and the
change dispatcher (records -> consumers). Only :class:`~pyhuesync.hub.SyncHub`
wires them together.
"""
