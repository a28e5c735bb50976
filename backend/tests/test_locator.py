import asyncio
import re

import pytest

from conftest import BlinkingElement, FakeElement
from autowait.core.actionability import Predicate
from autowait.core.errors import (
    LocatorIndexError,
    StrictModeViolationError,
    TimeoutExceededError,
)
from autowait.core.selectors import (
    data_testid_selector,
    label_selector,
    placeholder_selector,
    role_selector,
    text_selector,
    title_selector,
)

pytestmark = pytest.mark.asyncio

EMAIL = role_selector("textbox", "Email")
PASSWORD = role_selector("textbox", "Password")


def build_form_layouts(root):
    """Two cards, each with its own Email field, plus two plain cards."""
    grid_email = FakeElement(editable=True, attributes={"placeholder": "Email"})
    grid = FakeElement("Using the Grid Email Password Option 1 Sign in")
    grid.add(EMAIL, grid_email)
    grid.add("#inputEmail1", grid_email)

    basic_email = FakeElement(editable=True, attributes={"placeholder": "Email"})
    basic_password = FakeElement(editable=True)
    basic = FakeElement("Basic form Email address Password Check me out Submit")
    basic.add(EMAIL, basic_email)
    basic.add(PASSWORD, basic_password)

    inline = FakeElement("Inline form Jane Doe Remember me Submit")
    block = FakeElement("Block form First Name Last Name Submit")

    root.add("nb-card", grid, basic, inline, block)
    return {
        "grid": grid,
        "grid_email": grid_email,
        "basic": basic,
        "basic_email": basic_email,
        "basic_password": basic_password,
        "inline": inline,
        "block": block,
    }


async def test_repr_describes_chain(page):
    locator = (
        page.locator("nb-card")
        .filter(has_text="Basic form")
        .get_by_role("textbox", name="Email")
        .first
    )
    assert str(locator) == (
        "locator('nb-card').filter(has_text='Basic form')"
        ".get_by_role('textbox', name='Email').first"
    )


async def test_building_does_not_resolve(page):
    # Nothing exists yet; only resolving would notice
    locator = page.locator("#nothing").nth(7).get_by_text("nope")
    assert "nth(7)" in str(locator)


async def test_count_reflects_current_dom(page, root):
    locator = page.locator("li")
    assert await locator.count() == 0

    root.add("li", FakeElement("one"), FakeElement("two"))
    assert await locator.count() == 2


async def test_has_text_filter_is_case_insensitive_substring(page, root):
    dom = build_form_layouts(root)

    handles = await page.locator("nb-card", has_text="basic FORM")._resolve_all()

    assert handles == [dom["basic"]]


async def test_has_text_regex(page, root):
    dom = build_form_layouts(root)

    handles = await page.locator("nb-card").filter(has_text=re.compile(r"^Inline"))._resolve_all()

    assert handles == [dom["inline"]]


async def test_filter_never_expands(page, root):
    build_form_layouts(root)
    cards = page.locator("nb-card")

    total = await cards.count()
    submit = await cards.filter(has_text="Submit").count()
    both = await cards.filter(has_text="Submit").filter(has_text="Basic").count()

    assert total == 4
    assert submit == 3
    assert both == 1


async def test_chained_filters_match_conjunction(page, root):
    build_form_layouts(root)
    cards = page.locator("nb-card")

    chained = await cards.filter(has_text="Submit").filter(has_not_text="Inline")._resolve_all()
    combined = await cards.filter(has_text="Submit", has_not_text="Inline")._resolve_all()

    assert chained == combined
    assert len(chained) == 2


async def test_has_keeps_parents_containing_locator(page, root):
    dom = build_form_layouts(root)

    handles = await page.locator("nb-card", has=page.locator("#inputEmail1"))._resolve_all()

    assert handles == [dom["grid"]]


async def test_has_not_drops_parents_containing_locator(page, root):
    dom = build_form_layouts(root)

    handles = await page.locator("nb-card").filter(has_not=page.locator(EMAIL))._resolve_all()

    assert handles == [dom["inline"], dom["block"]]


async def test_nth_first_last(page, root):
    dom = build_form_layouts(root)
    cards = page.locator("nb-card")

    assert await cards.first._resolve_all() == [dom["grid"]]
    assert await cards.nth(1)._resolve_all() == [dom["basic"]]
    assert await cards.nth(3)._resolve_all() == [dom["block"]]
    assert await cards.last._resolve_all() == [dom["block"]]


async def test_nth_out_of_range_raises_on_snapshot_read(page, root):
    build_form_layouts(root)

    with pytest.raises(LocatorIndexError) as exc_info:
        await page.locator("nb-card").nth(10).count()

    assert exc_info.value.index == 10
    assert exc_info.value.count == 4
    assert isinstance(exc_info.value, IndexError)


async def test_nth_out_of_range_waits_as_not_attached(page, root):
    build_form_layouts(root)

    with pytest.raises(TimeoutExceededError) as exc_info:
        await page.locator("nb-card").nth(10).click(timeout=50)

    error = exc_info.value
    assert error.predicate is Predicate.ATTACHED
    assert "index 10 out of range for 4 matches" in str(error)


async def test_nth_waits_for_enough_matches(page, root):
    build_form_layouts(root)
    late = FakeElement("Late card")
    root.insert_later(40, "nb-card", late)

    await page.locator("nb-card").nth(4).click(timeout=2000)

    assert late.actions == [("click",)]


async def test_strict_mode_violation(page, root):
    build_form_layouts(root)

    with pytest.raises(StrictModeViolationError) as exc_info:
        await page.locator("nb-card").click(timeout=500)

    assert exc_info.value.count == 4
    assert "locator('nb-card') resolved to 4 elements" in str(exc_info.value)


async def test_strict_mode_applies_to_reads(page, root):
    build_form_layouts(root)

    with pytest.raises(StrictModeViolationError):
        await page.locator("nb-card").text_content(timeout=500)


async def test_multi_element_reads_are_not_strict(page, root):
    build_form_layouts(root)

    texts = await page.locator("nb-card").all_text_contents()

    assert len(texts) == 4
    assert texts[1].startswith("Basic form")


async def test_all_returns_positional_locators(page, root):
    build_form_layouts(root)

    cards = await page.locator("nb-card").all()

    assert [str(c) for c in cards] == [
        "locator('nb-card').first",
        "locator('nb-card').nth(1)",
        "locator('nb-card').nth(2)",
        "locator('nb-card').nth(3)",
    ]


async def test_two_fields_do_not_cross_contaminate(page, root):
    dom = build_form_layouts(root)
    grid = page.locator("nb-card", has_text="Using the Grid")
    basic = page.locator("nb-card").filter(has_text="Basic form")

    await grid.get_by_role("textbox", name="Email").fill("grid@example.com")
    await basic.get_by_role("textbox", name="Email").fill("basic@example.com")
    await basic.get_by_role("textbox", name="Password").fill("12345")

    assert dom["grid_email"].value == "grid@example.com"
    assert dom["basic_email"].value == "basic@example.com"
    assert dom["basic_password"].value == "12345"
    assert await basic.get_by_role("textbox", name="Email").input_value() == "basic@example.com"


async def test_user_facing_locators_resolve(page, root):
    button = FakeElement("Sign in")
    field = FakeElement(editable=True)
    dashboard = FakeElement("IoT Dashboard")
    submit = FakeElement("Submit")
    root.add(role_selector("button", "Sign in"), button)
    root.add(label_selector("Email"), field)
    root.add(placeholder_selector("Jane Doe"), field)
    root.add(text_selector("Using the Grid"), FakeElement("Using the Grid"))
    root.add(title_selector("IoT Dashboard"), dashboard)
    root.add(data_testid_selector("submit"), submit)

    await page.get_by_role("button", name="Sign in").click()
    await page.get_by_label("Email").fill("a@b.c")
    await page.get_by_placeholder("Jane Doe").click()
    await page.get_by_text("Using the Grid").click()
    await page.get_by_title("IoT Dashboard").click()
    await page.get_by_test_id("submit").click()

    assert button.actions == [("click",)]
    assert field.actions == [("fill", "a@b.c"), ("click",)]
    assert dashboard.actions == [("click",)]
    assert submit.actions == [("click",)]


async def test_is_visible_and_is_hidden_do_not_wait(page, root):
    root.add("#shown", FakeElement("shown"))
    root.add("#hidden", FakeElement("hidden", visible=False))

    assert await page.locator("#shown").is_visible()
    assert await page.locator("#hidden").is_hidden()
    assert await page.locator("#missing").is_hidden()


async def test_wait_for_attached(page, root):
    root.insert_later(30, ".bg-success", FakeElement("Data loaded"))

    await page.locator(".bg-success").wait_for(state="attached", timeout=2000)

    assert await page.locator(".bg-success").count() == 1


async def test_wait_for_hidden(page, root):
    spinner = FakeElement("Loading")
    root.add(".spinner", spinner)
    asyncio.get_running_loop().call_later(0.03, setattr, spinner, "visible", False)

    await page.locator(".spinner").wait_for(state="hidden", timeout=2000)


async def test_wait_for_detached(page, root):
    spinner = FakeElement("Loading")
    root.add(".spinner", spinner)
    asyncio.get_running_loop().call_later(0.03, spinner.detach)

    await page.locator(".spinner").wait_for(state="detached", timeout=2000)


async def test_wait_for_visible_times_out(page, root):
    root.add("#hidden", FakeElement("hidden", visible=False))

    with pytest.raises(TimeoutExceededError) as exc_info:
        await page.locator("#hidden").wait_for(timeout=50)

    assert exc_info.value.predicate is Predicate.VISIBLE


async def test_wait_for_unknown_state(page):
    with pytest.raises(ValueError):
        await page.locator("#x").wait_for(state="stable")


async def test_nested_parents_yield_each_child_once(page, root):
    span = FakeElement("Only one")
    inner = FakeElement("Only one").add("span", span)
    # the outer div sees the span through the inner div as well
    outer = FakeElement("Only one").add("span", span)
    root.add("div", outer, inner)

    locator = page.locator("div").locator("span")

    assert await locator.count() == 1
    await locator.click(timeout=1000)
    assert span.actions == [("click",)]


async def test_deduplicated_matches_keep_document_order(page, root):
    first, second = FakeElement("first"), FakeElement("second")
    outer = FakeElement().add("li", first, second)
    inner = FakeElement().add("li", first)
    root.add("ul", outer, inner)

    items = page.locator("ul").locator("li")

    assert await items.all_text_contents() == ["first", "second"]
    assert await items.last.text_content() == "second"


async def test_intermediate_handles_are_disposed(page, root):
    elements = build_form_layouts(root)

    await page.locator("nb-card").get_by_role("textbox", name="Email").first.fill("a@b.c")
    email = page.get_by_role("textbox", name="Email")
    assert await page.locator("nb-card").filter(has=email).count() == 2

    assert elements["grid_email"].value == "a@b.c"
    for element in elements.values():
        assert element.disposals == element.handed_out


async def test_wait_for_survives_detach_while_filtering(page, root):
    root.add("nb-card", BlinkingElement("Basic form"))

    await page.locator("nb-card").filter(has_text="Basic").wait_for(timeout=500)
