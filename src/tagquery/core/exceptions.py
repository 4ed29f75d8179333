"""Custom exceptions for tagquery."""


class TagQueryError(Exception):
    """Base exception for all tagquery errors."""

    pass


class ConfigError(TagQueryError):
    """Search, field or tag configuration is invalid."""

    pass


class MalformedReferenceError(TagQueryError):
    """A document reference alias does not carry the `$` sigil."""

    def __init__(self, ref: str):
        """Initialize exception with the offending reference.

        Args:
            ref: The reference value that was given.
        """
        self.ref = ref
        super().__init__(
            f"All item '$' references must have a value that starts with '$' - given {ref!r}"
        )


class HandlerContractError(TagQueryError):
    """A tag handler returned something other than a filter stage or False."""

    def __init__(self, tag: str, result: object):
        """Initialize exception with the tag and its bad result.

        Args:
            tag: Tag key whose handler misbehaved.
            result: The value the handler returned.
        """
        self.tag = tag
        self.result = result
        super().__init__(
            f"Expected aggregation stage (or False) from tag {tag!r} "
            f"but got {type(result).__name__}"
        )


class UnresolvedStageError(TagQueryError):
    """Stages remained in the tag buffer after filter splicing."""

    def __init__(self, stages: list[dict]):
        """Initialize exception with the leftover stages.

        Args:
            stages: Stages that could not be spliced as filters.
        """
        self.stages = stages
        super().__init__(
            f"{len(stages)} stage(s) remaining after $match stages were extracted, "
            "this buffer should be empty"
        )


class SearchError(TagQueryError):
    """Search operation failed."""

    pass


class PipelineError(SearchError):
    """Pipeline could not be executed by the document store."""

    pass


class DatabaseError(SearchError):
    """Database operation failed."""

    pass


class DocumentNotFoundError(SearchError):
    """Document does not exist."""

    def __init__(self, doc_id: str, collection: str | None = None):
        """Initialize exception with document id.

        Args:
            doc_id: ID of the document that was not found.
            collection: Collection that was searched.
        """
        self.doc_id = doc_id
        self.collection = collection
        where = f" in {collection!r}" if collection else ""
        super().__init__(f"Document not found{where}: {doc_id}")
