"""Error taxonomy for FFLogs access and the analysis pipeline."""


class FFLogsError(Exception):
    """Base class for everything raised while talking to FFLogs."""


class FFLogsAuthError(FFLogsError):
    """Raised when the OAuth client-credentials exchange fails."""


class FFLogsTransportError(FFLogsError):
    """Raised when the network keeps failing after all retries."""


class FFLogsTimeoutError(FFLogsTransportError):
    """Raised when a request exceeds the configured per-request timeout."""


class FFLogsHTTPError(FFLogsError):
    """Raised on a non-retryable (or exhausted) non-2xx response."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"GraphQL request failed: {status_code} {body}")


class FFLogsAPIError(FFLogsError):
    """Raised when the GraphQL API reports errors or violates the protocol."""


class ReportNotFound(FFLogsError):
    def __init__(self, report_code: str) -> None:
        self.report_code = report_code
        super().__init__(f"Report not found or inaccessible: {report_code}")


class MasterDataUnavailable(FFLogsError):
    def __init__(self, report_code: str) -> None:
        self.report_code = report_code
        super().__init__(f"Cannot fetch masterData for report: {report_code}")


class RankingsNotFound(FFLogsError):
    def __init__(self, message: str, attempted: list[str] | None = None) -> None:
        self.attempted = list(attempted or [])
        if self.attempted:
            message = f"{message} attempted=[{' | '.join(self.attempted)}]"
        super().__init__(message)


class RankingsBudgetExceeded(RankingsNotFound):
    """Raised when a multi-attempt rankings search runs past its soft budget."""


class RankIndexOutOfRange(FFLogsError):
    def __init__(self, index: int, available: int) -> None:
        self.index = index
        self.available = available
        super().__init__(
            f"rank-index out of range. index={index}, available=0..{available - 1}"
        )


class FightSelectionError(FFLogsError):
    """Base for fight selection failures."""


class NoFightsInReport(FightSelectionError):
    def __init__(self) -> None:
        super().__init__("No fights in report.")


class FightNotFound(FightSelectionError):
    pass


class UnsupportedStrategy(FightSelectionError):
    def __init__(self, strategy: str) -> None:
        self.strategy = strategy
        super().__init__(f"Unsupported strategy: {strategy}")
