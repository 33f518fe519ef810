# exceptions.py
# Error taxonomy for polling, refresh, dashboard and aggregation paths


class UptimeMonitorError(Exception):
    pass


class SourceUnreachable(UptimeMonitorError):
    """A single upstream node could not be queried this tick."""

    def __init__(self, url: str, reason: str = ""):
        self.url = url
        self.reason = reason
        super().__init__(f"Node with url {url} is not accessible: {reason}")


class AllSourcesUnreachable(UptimeMonitorError):
    def __init__(self, urls):
        self.urls = list(urls)
        super().__init__(
            f"No valid responses from {len(self.urls)} node(s). Skipping metrics update"
        )


class RefreshFetchFailed(UptimeMonitorError):
    def __init__(self, url: str, reason: str = ""):
        self.url = url
        self.reason = reason
        super().__init__(f"Error fetching validator list from {url}: {reason}")


class DashboardWriteFailed(UptimeMonitorError):
    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        super().__init__(f"Error generating dashboard at {path}: {reason}")


class InvalidTimeRange(UptimeMonitorError, ValueError):
    pass
