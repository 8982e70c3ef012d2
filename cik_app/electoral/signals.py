"""Lifecycle events for notification fan-out.

Events are dispatched after the surrounding transaction commits, so a
receiver never sees state that was rolled back. Delivery (email, push,
realtime) belongs to the receivers.
"""

import logging

from django.db import transaction
from django.dispatch import Signal

logger = logging.getLogger(__name__)

authority_appointed = Signal()
authority_dissolved = Signal()
election_created = Signal()
voting_opened = Signal()
election_cancelled = Signal()
election_certified = Signal()


def send_on_commit(signal: Signal, *, sender: type, **kwargs: object) -> None:
    def _send() -> None:
        for receiver, response in signal.send_robust(sender=sender, **kwargs):
            if isinstance(response, Exception):
                logger.error(
                    "Lifecycle event receiver failed receiver=%r error=%s",
                    receiver,
                    response,
                    exc_info=response,
                )

    transaction.on_commit(_send)
