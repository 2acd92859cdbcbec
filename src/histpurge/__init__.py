"""
histpurge: Safe batch purge of replicated database history.

Removes expired rows from a replication history table in bounded
batches, optionally isolating the cluster node while it runs, and always
restores the node's state before exiting.
"""

__version__ = "0.1.0"
