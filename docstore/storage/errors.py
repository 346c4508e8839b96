class CollectionError(Exception):
    """Base class for collection failures."""


class EntryDoesNotExistError(CollectionError):
    def __init__(self, message: str = "Entity does not exist"):
        super().__init__(message)


class EntryNotParsableError(CollectionError):
    """A stored entry could not be decoded into the requested shape."""

    def __init__(self, id, collection_name: str):
        self.id = id
        self.collection_name = collection_name
        super().__init__(f"Entry {collection_name}/{id}.json contains bad data.")


class InvalidEntryFileError(CollectionError):
    """A file in a collection directory is not named <uuid>.json."""

    def __init__(self, filename: str, collection_name: str):
        self.filename = filename
        self.collection_name = collection_name
        super().__init__(f"Unexpected file {collection_name}/{filename} in collection")


class InvalidCollectionNameError(CollectionError, ValueError):
    def __init__(self, name):
        self.name = name
        super().__init__(f"Invalid collection name: {name!r}")
