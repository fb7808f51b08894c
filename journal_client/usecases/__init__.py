"""Application operations built on the API client and the query cache."""

from .account import AccountSettings
from .auth import AuthFlow
from .autosave import AutoSave, State
from .daily_prompt import DailyPrompt
from .entry_mutations import EntryMutationCoordinator, FieldGroup, UpdateOutcome
from .folder_mutations import FolderCoordinator
from .media import MediaService
from .queries import JournalQueries
from .sharing import SharingService

__all__ = [
    "AccountSettings",
    "AuthFlow",
    "AutoSave",
    "State",
    "DailyPrompt",
    "EntryMutationCoordinator",
    "FieldGroup",
    "UpdateOutcome",
    "FolderCoordinator",
    "MediaService",
    "JournalQueries",
    "SharingService",
]
