from .store import BlobStore, BlobStoreError, InMemoryBlobStore, IpfsBlobStore, IPFS_SCHEME, cid_from_uri

__all__ = ["BlobStore", "BlobStoreError", "IPFS_SCHEME", "InMemoryBlobStore", "IpfsBlobStore", "cid_from_uri"]
