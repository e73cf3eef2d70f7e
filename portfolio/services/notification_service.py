import logging
from collections import namedtuple
from concurrent.futures import Future, ThreadPoolExecutor, wait

from portfolio.errors import MailTransportError
from portfolio.services.email_service import compose_new_artwork, compose_welcome

logger = logging.getLogger(__name__)

DeliveryResult = namedtuple("DeliveryResult", "email ok error")
BroadcastReport = namedtuple("BroadcastReport", "kind attempted delivered failed results")


class NotificationDispatcher:
    """Turns subscription and new-artwork events into emails.

    One recipient's failure never blocks or fails delivery to the others:
    each attempt produces a DeliveryResult and nothing is retried.
    """

    def __init__(self, registry, mailer, site_name="the portfolio", max_workers=8, inline=False):
        self.registry = registry
        self.mailer = mailer
        self.site_name = site_name
        self.max_workers = max_workers
        self.inline = inline
        self._background = None if inline else ThreadPoolExecutor(
            max_workers=2, thread_name_prefix="notify")

    def dispatch(self, fn, *args):
        """Run notification work after the triggering write has committed.

        Returns a Future; the caller never waits on it to answer its request.
        """
        if self._background is not None:
            return self._background.submit(self._run_logged, fn, *args)

        future = Future()
        try:
            future.set_result(self._run_logged(fn, *args))
        except Exception as e:
            future.set_exception(e)
        return future

    def _run_logged(self, fn, *args):
        try:
            return fn(*args)
        except Exception:
            logger.exception("Notification task %s failed", getattr(fn, "__name__", fn))
            raise

    def _deliver(self, email, subject, text, html):
        try:
            self.mailer.send(email, subject, text, html)
        except MailTransportError as e:
            logger.warning("Email to %s failed: %s", email, e.reason)
            return DeliveryResult(email, False, e.reason)
        logger.info("Email to %s sent", email)
        return DeliveryResult(email, True, None)

    def send_welcome(self, subscriber, base_url):
        subject, text, html = compose_welcome(subscriber, base_url, self.site_name)
        return self._deliver(subscriber["email"], subject, text, html)

    def broadcast_new_artwork(self, kind, base_url):
        subscribers = self.registry.list_active()
        if not subscribers:
            logger.info("Broadcast new %s: no active subscribers", kind)
            return BroadcastReport(kind, 0, 0, 0, [])

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(subscribers))) as pool:
            futures = {}
            for sub in subscribers:
                # Each message carries its own recipient's unsubscribe token
                subject, text, html = compose_new_artwork(sub, kind, base_url, self.site_name)
                futures[pool.submit(self._deliver, sub["email"], subject, text, html)] = sub["email"]
            wait(futures)

        results = []
        for future, email in futures.items():
            try:
                results.append(future.result())
            except Exception as e:
                logger.exception("Unexpected error emailing %s", email)
                results.append(DeliveryResult(email, False, str(e)))

        delivered = sum(1 for r in results if r.ok)
        report = BroadcastReport(kind, len(results), delivered, len(results) - delivered, results)
        logger.info("Broadcast new %s: %d of %d subscribers notified, %d failed",
                    kind, report.delivered, report.attempted, report.failed)
        return report

    def shutdown(self, wait_for_pending=True):
        if self._background is not None:
            self._background.shutdown(wait=wait_for_pending)
