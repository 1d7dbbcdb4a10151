"""Fill the fields of an application form described by a page analysis."""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from agents.common.gemini_client import LLMProviderError
from agents.hunter.field_resolver import FieldResolver
from agents.hunter.models import FIELD_TYPES, TEXT_LIKE_TYPES, FillResult, FormField, JobContext, PageAnalysis
from agents.hunter.pacing import NoPacing, PacingPolicy, pause
from agents.hunter.profile import UserProfile
from utils.logging import get_logger

logger = get_logger(__name__)

SELECTED_INDEX_JS = "el => el.selectedIndex"
OPTIONS_JS = "el => Array.from(el.options).map(o => ({ value: o.value, text: o.text }))"
RADIO_LABEL_JS = """
el => {
  const labelEl = (el.labels && el.labels[0]) || document.querySelector(`label[for="${el.id}"]`);
  return (labelEl && labelEl.textContent) || el.value || "";
}
"""
TRUTHY_ANSWERS = {"true", "yes", "1"}


def is_truthy(value: str) -> bool:
    return (value or "").strip().lower() in TRUTHY_ANSWERS


def choose_select_option(options: Sequence[Dict[str, Any]], value: str) -> Optional[str]:
    """Return the option value to select for ``value``.

    Exact text/value match first, then substring either way, then the first
    non-empty option as a last resort.
    """
    wanted = (value or "").strip().lower()
    normalized = [
        (str(option.get("value") or ""), str(option.get("text") or "").strip())
        for option in options
    ]
    for option_value, text in normalized:
        if text.lower() == wanted or option_value.lower() == wanted:
            return option_value
    for option_value, text in normalized:
        lowered = text.lower()
        if lowered and (wanted in lowered or lowered in wanted):
            return option_value
    if len(normalized) > 1:
        for option_value, _text in normalized:
            if option_value:
                return option_value
    return None


class FormFiller:
    """Drives per-field fills and aggregates them into a ``FillResult``."""

    def __init__(
        self,
        analyzer,
        resolver: FieldResolver | None = None,
        pacing: PacingPolicy | None = None,
    ) -> None:
        self.analyzer = analyzer
        self.resolver = resolver or FieldResolver(analyzer)
        self.pacing = pacing or NoPacing()

    async def fill_form(
        self,
        page,
        profile: UserProfile,
        job_context: JobContext,
        analysis: PageAnalysis | None = None,
    ) -> FillResult:
        if analysis is None:
            analysis = await self.analyzer.analyze_page(page)

        result = FillResult()
        if not analysis.form_fields:
            result.errors.append("No form fields detected")
            return result

        logger.info("Filler: %d form fields to fill", len(analysis.form_fields))
        for field in analysis.form_fields:
            try:
                filled = await self._fill_field(page, field, profile, job_context, result.errors)
            except LLMProviderError:
                raise
            except Exception as exc:
                message = f"Failed to fill {field.label or field.selector}: {exc}"
                logger.warning("Filler: %s", message)
                result.errors.append(message)
                filled = False
            if filled:
                result.fields_filled += 1
            else:
                result.fields_skipped += 1
            await pause(self.pacing, "field")

        logger.info(
            "Filler: filled=%d skipped=%d errors=%d",
            result.fields_filled,
            result.fields_skipped,
            len(result.errors),
        )
        return result

    async def answer_question(self, question: str, profile: UserProfile, job_context: JobContext) -> str:
        field = FormField(selector="", type="textarea", label=question, required=True)
        return await self.analyzer.determine_field_value(field, profile, job_context)

    async def _fill_field(
        self,
        page,
        field: FormField,
        profile: UserProfile,
        job_context: JobContext,
        errors: List[str],
    ) -> bool:
        if field.type not in FIELD_TYPES:
            errors.append(f"Unknown field type: {field.type} ({field.label or field.selector})")
            return False
        element = await page.query_selector(field.selector)
        if element is None:
            logger.debug("Filler: element not found for %s", field.selector)
            return False
        if not await element.is_visible():
            logger.debug("Filler: element not visible %s", field.selector)
            return False
        if await self._already_satisfied(element, field.type):
            logger.debug("Filler: already filled %r", field.label)
            return True

        value = await self.resolver.resolve_value(field, profile, job_context)
        if not value:
            if field.required:
                errors.append(f"No value for required field: {field.label or field.selector}")
            return False

        await element.scroll_into_view_if_needed()
        await pause(self.pacing, "scroll")

        if field.type in TEXT_LIKE_TYPES:
            await self._type_text(element, value)
        elif field.type == "file":
            await element.set_input_files(value)
        elif field.type == "select":
            if not await self._fill_select(element, value):
                if field.required:
                    errors.append(f"No matching option for required field: {field.label or field.selector}")
                return False
        elif field.type == "checkbox":
            if is_truthy(value) != await element.is_checked():
                await element.click()
        else:
            await self._fill_radio(page, element, value)

        shown = "[file]" if field.type == "file" else value[:30]
        logger.info("Filler: filled %r with %s", field.label, shown)
        return True

    async def _already_satisfied(self, element, field_type: str) -> bool:
        try:
            if field_type in TEXT_LIKE_TYPES:
                return bool(await element.input_value())
            if field_type == "checkbox":
                return bool(await element.is_checked())
            if field_type == "select":
                return (await element.evaluate(SELECTED_INDEX_JS) or 0) > 0
        except Exception as exc:  # unreadable state counts as empty
            logger.debug("Filler: could not read current state: %s", exc)
        return False

    async def _type_text(self, element, value: str) -> None:
        await element.click()
        await pause(self.pacing, "click")
        await element.fill("")
        for char in value:
            delay_ms = self.pacing.delay_before_action("keystroke") * 1000
            await element.type(char, delay=delay_ms)

    async def _fill_select(self, element, value: str) -> bool:
        options = await element.evaluate(OPTIONS_JS) or []
        choice = choose_select_option(options, value)
        if choice is None:
            logger.debug("Filler: no select option for %r", value)
            return False
        await element.select_option(value=choice)
        return True

    async def _fill_radio(self, page, element, value: str) -> None:
        group_name = await element.get_attribute("name")
        radios = await page.query_selector_all(f'input[type="radio"][name="{group_name}"]') if group_name else []
        if not radios:
            radios = [element]

        wanted = value.strip().lower()
        for radio in radios:
            radio_value = (await radio.get_attribute("value") or "").lower()
            label = str(await radio.evaluate(RADIO_LABEL_JS) or "").lower()
            if radio_value == wanted or (wanted and wanted in label):
                await radio.click()
                return
        # Deterministic fallback: leave no group unset.
        await radios[0].click()
