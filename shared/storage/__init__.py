from .blob_store import BaseBlobStore, LocalBlobStore, HttpBlobStore

__all__ = ["BaseBlobStore", "LocalBlobStore", "HttpBlobStore"]
