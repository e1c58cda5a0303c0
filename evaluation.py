import logging
import time

import requests

from errors import EmptyStore, TargetUnreachable
from models import EvaluationReport, EvaluationResult

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINTS = (
    "/superusers",
    "/top-countries",
    "/team-insights",
    "/active-users-per-day",
)


class EvaluationHarness:
    """Probes the service's own analytical endpoints over HTTP, one at a time.

    Each probe carries a hard timeout so one unreachable endpoint cannot stall
    the rest. A target lands in ``results`` when the call completed and in
    ``errors`` when it failed at the transport level, never in both.
    """

    def __init__(self, store, base_url, endpoints=DEFAULT_ENDPOINTS,
                 timeout_seconds=5.0, session=None):
        self._store = store
        self._base_url = base_url.rstrip("/")
        self._endpoints = tuple(endpoints)
        self._timeout = timeout_seconds
        self._session = session or requests.Session()

    @property
    def endpoints(self):
        return self._endpoints

    def probe(self, endpoint):
        """Call one endpoint and classify the response.

        Raises:
            TargetUnreachable: connection error, timeout or any other
                transport failure.
        """
        start = time.perf_counter()
        try:
            response = self._session.get(self._base_url + endpoint, timeout=self._timeout)
        except requests.RequestException as exc:
            raise TargetUnreachable(endpoint, str(exc)) from exc
        elapsed_ms = int((time.perf_counter() - start) * 1000)

        return EvaluationResult(
            status=response.status_code,
            time_ms=elapsed_ms,
            valid_response=response.ok and self._has_json_body(response),
        )

    @staticmethod
    def _has_json_body(response):
        try:
            response.json()
        except ValueError:
            return False
        return True

    def evaluate(self):
        """Probe every endpoint in order.

        Raises:
            EmptyStore: nothing has been ingested, so no probe is issued.
        """
        if not self._store:
            raise EmptyStore()

        report = EvaluationReport()
        for endpoint in self._endpoints:
            try:
                report.results[endpoint] = self.probe(endpoint)
            except TargetUnreachable as exc:
                logger.warning("Evaluation request to %s failed: %s", endpoint, exc.detail)
                report.errors[endpoint] = exc.to_dict()

        logger.info(
            "Evaluated %d endpoints: %d answered, %d unreachable",
            len(self._endpoints), len(report.results), len(report.errors),
        )
        return report
