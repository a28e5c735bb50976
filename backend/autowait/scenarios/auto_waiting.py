"""
Auto-waiting against the AJAX demo page.

Clicking "Button triggering AJAX request" inserts a `.bg-success` paragraph
once the request completes. The locator for it exists before the element
does; nothing touches the DOM until an action, read or assertion runs.

Manual waits, when auto-waiting is not enough:
    await page.wait_for_selector(".bg-success")
    await page.wait_for_response("/ajaxdata")
    await page.wait_for_load_state("networkidle")   # broad, slow
Hard waits (page.wait_for_timeout) make tests slow and flaky.
"""

import structlog

from autowait.config import settings
from autowait.core import Suite, expect

logger = structlog.get_logger()

AJAX_BUTTON_TEXT = "Button triggering AJAX request"
AJAX_SUCCESS_TEXT = "Data loaded with AJAX get request."

suite = Suite(
    "auto-waiting",
    description="Actionability checks and auto-waiting matchers on the AJAX demo page",
    tags=("auto-waiting",),
)


@suite.before_each
async def open_ajax_page(page):
    await page.goto(settings.ajax_demo_url)
    await page.get_by_text(AJAX_BUTTON_TEXT).click()


@suite.test("Auto-waiting demonstration on AJAX page")
async def auto_waiting_demonstration(page):
    success = page.locator(".bg-success")

    # all_text_contents() reads a snapshot and does not wait, so wait for
    # the element to be attached first.
    await success.wait_for(state="attached")
    texts = await success.all_text_contents()
    expect(texts).to_contain(AJAX_SUCCESS_TEXT)

    # Locator assertions wait on their own; the request can outlive the
    # default 5000 ms assertion timeout.
    await expect(success).to_have_text(AJAX_SUCCESS_TEXT, timeout=20000)


@suite.test("Alternative waits")
async def alternative_waits(page):
    success = page.locator(".bg-success")

    await page.wait_for_load_state("networkidle")
    logger.info("network_idle", url=page.url)

    texts = await success.all_text_contents()
    expect(texts).to_contain(AJAX_SUCCESS_TEXT)
