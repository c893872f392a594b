"""Exceptions raised by the refresh pipeline and the store."""


class ExternalSourceError(Exception):
    """One of the upstream data sources could not be fetched.

    Carries the source label (``countries`` or ``rates``), the URL that failed
    and the underlying cause so the API layer can answer with a 503 rather
    than a generic 500.
    """

    def __init__(self, source: str, url: str, cause):
        self.source = source
        self.url = url
        self.cause = cause
        super().__init__(f"Could not fetch data from {url}. Reason: {cause}")


class CountryExistsError(Exception):
    """A write would produce a second row for the same normalized name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Country already exists: {name}")
