class HeapviewError(Exception):
    """
    Base exception for heapview failures.
    """

    pass


class TraversalFault(HeapviewError):
    """
    Raised when labeling a node fails because the runtime's
    string-conversion or kind-name call-out raised.

    The snapshot is abandoned; the previous diagram stays on screen.
    """

    def __init__(self, object_id: str, type_name: str, cause: BaseException):
        super().__init__(f"could not label object {object_id} ({type_name}): {cause!r}")
        self.object_id = object_id
        self.type_name = type_name


class SurfaceClosedError(HeapviewError):
    """
    Raised when the diagram surface can no longer be mutated.
    """

    pass


class HeapDescriptionError(HeapviewError, ValueError):
    """
    Raised when a heap description document is malformed.
    """

    pass
