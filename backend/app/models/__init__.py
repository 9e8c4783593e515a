from app.models.bets import Bet, SyncJob
from app.models.source import source_bets, source_channels, source_metadata, source_users

__all__ = [
    'Bet',
    'SyncJob',
    'source_bets',
    'source_channels',
    'source_metadata',
    'source_users',
]
