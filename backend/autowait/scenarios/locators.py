"""
Locators against the form-layout application (Forms -> Form Layouts).

Covers selector syntax, user-facing (accessibility-first) locators, parent ->
child chains, parent selection with has/has_text/filter, re-used locators,
value extraction, and general/locator/soft assertions.
"""

import re

import structlog

from autowait.config import settings
from autowait.core import Suite, expect

logger = structlog.get_logger()

suite = Suite(
    "locators",
    description="Locator syntax, narrowing, extraction and assertion kinds on the form-layout app",
    tags=("locators",),
)


@suite.before_each
async def open_form_layouts(page):
    await page.goto(settings.form_layouts_url)
    await page.get_by_text("Forms").click()
    await page.get_by_text("Form Layouts").click()


@suite.test("Locator syntax rules")
async def locator_syntax_rules(page):
    # Building a locator never touches the page, so none of these wait.
    locators = [
        page.locator("input"),
        page.locator("#inputEmail1"),
        page.locator(".shape-rectangle"),
        page.locator(
            '[class="input-full-width size-medium status-basic shape-rectangle nb-transition"]'
        ),
        page.locator('[placeholder="Email"]'),
        page.locator('input[placeholder="Email"][nbinput]'),
        # :text() matches a substring, :text-is() the whole text
        page.locator(':text("Using")'),
        page.locator(':text-is("Using the Grid")'),
    ]
    logger.info("locators_built", locators=[str(loc) for loc in locators])


@suite.test("User facing locators")
async def user_facing_locators(page):
    await page.get_by_role("textbox", name="Email").first.click()
    await page.get_by_role("button", name="Sign in").first.click()

    await page.get_by_label("Email").first.click()
    await page.get_by_placeholder("Jane Doe").click()
    await page.get_by_text("Using the Grid").click()
    await page.get_by_title("IoT Dashboard").click()


@suite.test("Child element locators")
async def child_element_locators(page):
    await page.locator('nb-card nb-radio :text-is("Option 1")').click()
    await page.locator("nb-card").get_by_role("button", name="Sign in").first.click()

    # nth() is 0-based: the fourth nb-card on the page
    await page.locator("nb-card").nth(3).get_by_role("button").click()


@suite.test("Parent element locators")
async def parent_element_locators(page):
    await page.locator("nb-card", has_text="Using the Grid").get_by_role(
        "textbox", name="Email"
    ).click()

    await page.locator("nb-card", has=page.locator("#inputEmail1")).get_by_role(
        "textbox", name="Email"
    ).click()

    await page.locator("nb-card").filter(has_text="Basic form").get_by_role(
        "textbox", name="Email"
    ).click()


@suite.test("Re-using locators")
async def reusing_locators(page):
    basic_form = page.locator("nb-card").filter(has_text="Basic form")
    email_field = basic_form.get_by_role("textbox", name="Email")
    password_field = basic_form.get_by_role("textbox", name="Password")
    submit_button = basic_form.get_by_role("button", name="Submit")

    await email_field.fill("johndoe@example.com")
    await password_field.fill("12345")
    await basic_form.locator("nb-checkbox").click()
    await submit_button.click()

    await expect(email_field).to_have_value("johndoe@example.com")
    await expect(password_field).to_have_value("12345")
    await expect(basic_form.locator("nb-checkbox .custom-checkbox")).to_have_class(
        re.compile("checked")
    )


@suite.test("Extracting values")
async def extracting_values(page):
    basic_form = page.locator("nb-card").filter(has_text="Basic form")

    button_text = await basic_form.get_by_role("button", name="Submit").text_content()
    expect(button_text).to_be("Submit")

    radio_texts = await page.locator("nb-radio").all_text_contents()
    expect(radio_texts).to_have_length(3)
    expect(radio_texts).to_contain("Option 1")
    expect(radio_texts).to_contain("Option 2")
    expect(radio_texts).to_contain("Disabled Option")

    # text_content reads rendered text; input_value reads the field's value
    email_field = basic_form.get_by_role("textbox", name="Email")
    await email_field.fill("johndoe@example.com")
    email_value = await email_field.input_value()
    expect(email_value).to_be("johndoe@example.com")

    placeholder = await email_field.get_attribute("placeholder")
    expect(placeholder).to_be("Email")


@suite.test("Assertions")
async def assertions(page):
    # General assertions: evaluated once, no waiting
    value = 5
    expect(value).to_equal(5)

    basic_form_button = page.locator("nb-card").filter(has_text="Basic form").locator("button")
    text = await basic_form_button.text_content()
    expect(text).to_be("Submit")

    # Locator assertions: auto-waiting
    await expect(basic_form_button).to_have_text("Submit")

    # Soft assertions: recorded, the test keeps going (deliberately wrong)
    await expect.soft(basic_form_button).to_have_text("Submittt")
    logger.info("soft_assertion_continued")

    await basic_form_button.click()
    logger.info("button_clicked_after_soft_assertion")
