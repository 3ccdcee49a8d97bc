from .synchronizer import QueueSynchronizer, SyncState

__all__ = ['QueueSynchronizer', 'SyncState']
