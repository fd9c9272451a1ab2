"""Pre-extraction interaction: open the booking modal that hosts the calendar.

Some operators render their availability calendar only after a "Book now"
button is clicked. This stage mutates the live page on purpose.
"""

import logging
from typing import TYPE_CHECKING

from tourwatch.errors import InteractionError
from tourwatch.models import SiteConfig

if TYPE_CHECKING:
    from tourwatch.config import RenderTimeouts
    from tourwatch.scraper.base import RenderedPage

logger = logging.getLogger(__name__)

_TRIGGER_SELECTOR = "button"


def open_booking_modal(page: "RenderedPage", site: SiteConfig, timeouts: "RenderTimeouts") -> bool:
    """Click the site's trigger control and wait for the UI to settle.

    Returns:
        True if a click happened, False if the site needs no interaction.

    Raises:
        InteractionError: If no button containing the trigger label is
            found within the wait, or the click fails.
    """
    if not site.requires_interaction:
        return False

    label = site.interaction_trigger_label or ""
    logger.info("%s: looking for %r button", site.name, label)

    element = page.find_by_text(_TRIGGER_SELECTOR, label, timeouts.trigger_wait_ms)
    if element is None:
        raise InteractionError(f"{label!r} button not found")

    logger.info("%s: clicking %r", site.name, label)
    page.click(element)
    page.wait(timeouts.interaction_settle_ms)
    logger.info("%s: modal should be open now", site.name)
    return True
