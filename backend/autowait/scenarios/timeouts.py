"""
Timeout scopes, one test per scope.

    run        -> global_timeout setting          (default: none)
    test       -> test_timeout / set_timeout()    (default: 30000 ms)
    action     -> page.set_default_timeout()      (default: none)
    navigation -> set_default_navigation_timeout  (default: none)
    assertion  -> expect(..., timeout=)           (default: 5000 ms)

Outer scopes contain inner ones: whichever expires first wins.
"""

import structlog

from autowait.config import settings
from autowait.core import Suite, expect
from autowait.scenarios.auto_waiting import AJAX_BUTTON_TEXT, AJAX_SUCCESS_TEXT

logger = structlog.get_logger()

UNREACHABLE_URL = "https://example.com:81"

suite = Suite(
    "timeouts",
    description="Test, action, assertion and navigation timeouts on the AJAX demo page",
    tags=("timeouts",),
)


@suite.before_each
async def open_ajax_page(page):
    await page.goto(settings.ajax_demo_url)


@suite.test("Test timeout", expect_failure=True)
async def run_past_test_timeout(page, test_info):
    test_info.set_timeout(5000)
    logger.info("expecting_test_timeout", timeout_ms=5000)

    await page.get_by_text(AJAX_BUTTON_TEXT).click()
    await page.wait_for_timeout(6000)


@suite.test("Action timeout", expect_failure=True)
async def action_timeout_exceeded(page):
    page.set_default_timeout(3000)
    logger.info("expecting_action_timeout", timeout_ms=3000)

    await page.get_by_text(AJAX_BUTTON_TEXT).click()
    success = page.locator(".bg-success")

    await success.click()


@suite.test("Expect timeout")
async def expect_timeout_override(page):
    await page.get_by_text(AJAX_BUTTON_TEXT).click()
    success = page.locator(".bg-success")

    await expect(success).to_have_text(AJAX_SUCCESS_TEXT, timeout=10000)
    logger.info("assertion_passed_within_override", timeout_ms=10000)


@suite.test("Navigation timeout", expect_failure=True)
async def navigation_timeout_exceeded(page):
    page.set_default_navigation_timeout(3000)
    logger.info("expecting_navigation_timeout", timeout_ms=3000)

    # The per-call timeout wins over the page default for this call only.
    await page.goto(UNREACHABLE_URL, timeout=5000)
