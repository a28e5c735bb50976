"""
autowait - locator, auto-waiting and timeout layer over Playwright.
"""

__version__ = "0.1.0"
