from candidate_sync.models.stored_file import StoredFile

__all__ = ["StoredFile"]
