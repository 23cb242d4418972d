"""Generation orchestrator - runs the post-questionnaire sequences"""

import asyncio
import base64
import json
import logging
from typing import Any, Awaitable, Callable, List, Optional

from design_chat.models.errors import ApplicationError, ErrorCode, GenerationFailure
from design_chat.models.schemas import Flow, GenerationResult, ReferenceAnalysis, ReferenceEntry, SessionState
from design_chat.core.config import settings
from design_chat.core.extraction import (
    extract_html_from_response,
    extract_reference_analysis,
    parse_audit_response,
    parse_json_response,
    parse_references_string,
)
from design_chat.core.generation_service import GenerationService
from design_chat.core.messages import (
    AUDIT_COMPLETE_MESSAGE,
    AUDIT_EMPTY_MESSAGE,
    GENERATION_OVERLOADED_MESSAGE,
    NEW_WEBSITE_READY_MESSAGE,
    NO_URL_AUDIT_ISSUES,
    NO_URL_AUDIT_MESSAGE,
    REDESIGN_READY_MESSAGE,
    SCREENSHOT_PROGRESS_MESSAGE,
    loader_message,
)
from design_chat.core.pacing import ANALYSIS_MODEL, DESIGN_MODEL, ModelCallPacer
from design_chat.core.prompts import (
    UI_UX_AUDIT_PROMPT,
    build_html_prompt,
    build_new_website_spec_prompt,
    build_redesign_spec_prompt,
    build_reference_prompt,
)
from design_chat.core.screenshot_client import ScreenshotClient, screenshot_client
from design_chat.core.session import enqueue_rating_prompt, request_email
from design_chat.core.state_machine import GenerationPhase, GenerationProgress
from design_chat.core.transcript import add_message

logger = logging.getLogger(__name__)


def _encode_image(image: bytes) -> str:
    return base64.b64encode(image).decode("ascii")


def has_current_url(state: SessionState) -> bool:
    url = state.responses.redesign_current_url
    return bool(url and url.strip())


def present_missing_url_notice(state: SessionState) -> None:
    """Redesign without a URL: nothing to audit, wait for the user to continue"""
    add_message(
        state,
        NO_URL_AUDIT_MESSAGE,
        audit_issues=list(NO_URL_AUDIT_ISSUES),
        is_audit_message=True,
        is_continue_prompt=True
    )
    state.awaiting_generation_continue = True


class GenerationOrchestrator:
    """
    Runs one generation per call against a session.

    Progress, screenshot flags and transcript messages are written onto the
    session state; on_change is called after each visible change so the
    caller can persist it. Screenshot bytes stay local to the run.
    """

    def __init__(
        self,
        service: Optional[GenerationService] = None,
        screenshots: Optional[ScreenshotClient] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ):
        self.service = service or GenerationService(sleep=sleep)
        self.screenshots = screenshots or screenshot_client
        self._sleep = sleep

    async def run(
        self,
        state: SessionState,
        progress: GenerationProgress,
        on_change: Optional[Callable[[], None]] = None
    ) -> GenerationResult:
        """Run the sequence for the session's flow; never raises for provider failures"""
        notify = on_change or (lambda: None)
        pacer = ModelCallPacer(sleep=self._sleep)

        try:
            if state.flow == Flow.NEW_WEBSITE:
                html = await self._run_new_website(state, progress, pacer, notify)
                ready_message = NEW_WEBSITE_READY_MESSAGE
            elif state.flow == Flow.REDESIGN:
                html = await self._run_redesign(state, progress, pacer, notify)
                ready_message = REDESIGN_READY_MESSAGE
            else:
                raise GenerationFailure(f"Session {state.session_id} has no flow to generate for")

            add_message(state, ready_message, html_content=html, is_html_message=True)
            state.generation_completed = True
            progress.log_event(GenerationPhase.DONE, "Your webpage is ready")
            enqueue_rating_prompt(state)
            logger.info(f"[ORCHESTRATOR] Generation finished for session {state.session_id} ({len(html)} chars)")
            return GenerationResult(success=True, content=html)

        except Exception as e:
            error_kind = e.code.value if isinstance(e, ApplicationError) else ErrorCode.GENERATION_FAILED.value
            logger.error(f"[ORCHESTRATOR] Generation failed for session {state.session_id}: {e!r}", exc_info=True)
            progress.log_event(GenerationPhase.FAILED, "Generation failed")
            request_email(state, GENERATION_OVERLOADED_MESSAGE)
            return GenerationResult(success=False, error_kind=error_kind)

        finally:
            state.is_busy = False
            state.generation_pending = False
            state.is_capturing_screenshot = False
            state.screenshot_progress_message = None
            state.generation_progress_message = None
            notify()

    def _set_progress(
        self,
        state: SessionState,
        progress: GenerationProgress,
        phase: GenerationPhase,
        loader_type: str,
        notify: Callable[[], None]
    ) -> None:
        detail = loader_message(loader_type, len(progress.event_log))
        progress.log_event(phase, detail)
        state.generation_progress_message = detail
        notify()

    async def analyze_references(
        self,
        entries: List[ReferenceEntry],
        pacer: ModelCallPacer
    ) -> List[ReferenceAnalysis]:
        """Analyze reference sites one at a time; failed sites are logged and skipped"""
        results: List[ReferenceAnalysis] = []
        for index, entry in enumerate(entries[:settings.max_reference_entries], start=1):
            try:
                screenshot = await self.screenshots.capture(entry.url)
                await pacer.wait_before(ANALYSIS_MODEL)
                pacer.record(ANALYSIS_MODEL)
                response = await self.service.analyze_image(
                    _encode_image(screenshot.image),
                    build_reference_prompt(entry.description)
                )
            except Exception as e:
                logger.error(f"[ORCHESTRATOR] Reference {index}/{len(entries)} failed ({entry.url}): {e!r}")
                continue

            analysis = extract_reference_analysis(response)
            if analysis is None:
                logger.error(f"[ORCHESTRATOR] Reference {index}/{len(entries)} returned an invalid analysis ({entry.url})")
                continue

            analysis["website_url"] = entry.url
            results.append(ReferenceAnalysis(url=entry.url, description=entry.description, analysis=analysis))

        logger.info(f"[ORCHESTRATOR] Analyzed {len(results)}/{len(entries)} reference websites")
        return results

    async def _analyze_stored_references(
        self,
        stored: Optional[str],
        state: SessionState,
        progress: GenerationProgress,
        pacer: ModelCallPacer,
        notify: Callable[[], None]
    ) -> List[ReferenceAnalysis]:
        entries = parse_references_string(stored)
        if not entries:
            return []
        self._set_progress(state, progress, GenerationPhase.ANALYZING_REFERENCES, "analyzing_references", notify)
        return await self.analyze_references(entries, pacer)

    async def _generate_specification(
        self,
        prompt: str,
        pacer: ModelCallPacer,
        image_base64: Optional[str] = None
    ) -> str:
        await pacer.wait_before(DESIGN_MODEL)
        pacer.record(DESIGN_MODEL)
        raw = await self.service.generate_specification(prompt, image_base64=image_base64)
        return json.dumps(parse_json_response(raw), indent=2)

    async def _generate_html(
        self,
        specification: str,
        redesign: bool,
        state: SessionState,
        progress: GenerationProgress,
        pacer: ModelCallPacer,
        notify: Callable[[], None]
    ) -> str:
        self._set_progress(state, progress, GenerationPhase.PREPARING_HTML, "preparing_html", notify)
        await pacer.wait_before(DESIGN_MODEL)
        pacer.record(DESIGN_MODEL)

        loader = "generating_html_redesign" if redesign else "generating_html_new"
        self._set_progress(state, progress, GenerationPhase.GENERATING_HTML, loader, notify)
        raw = await self.service.generate_html(build_html_prompt(specification, redesign=redesign))

        self._set_progress(state, progress, GenerationPhase.PROCESSING_HTML, "processing_html", notify)
        return extract_html_from_response(raw)

    async def _run_new_website(
        self,
        state: SessionState,
        progress: GenerationProgress,
        pacer: ModelCallPacer,
        notify: Callable[[], None]
    ) -> str:
        responses = state.responses
        references = await self._analyze_stored_references(
            responses.references_and_competitors, state, progress, pacer, notify
        )

        self._set_progress(state, progress, GenerationPhase.GENERATING_SPECIFICATION, "generating_spec_new", notify)
        specification = await self._generate_specification(
            build_new_website_spec_prompt(responses, references), pacer
        )
        return await self._generate_html(specification, False, state, progress, pacer, notify)

    async def _run_audit(
        self,
        state: SessionState,
        progress: GenerationProgress,
        pacer: ModelCallPacer,
        image_base64: str,
        notify: Callable[[], None]
    ) -> List[str]:
        detail = loader_message("reviewing_page", len(progress.event_log))
        progress.log_event(GenerationPhase.AUDITING, detail)
        state.screenshot_progress_message = detail
        notify()

        await pacer.wait_before(ANALYSIS_MODEL)
        pacer.record(ANALYSIS_MODEL)
        audit_response = await self.service.analyze_image(image_base64, UI_UX_AUDIT_PROMPT)
        issues = parse_audit_response(audit_response)

        state.is_capturing_screenshot = False
        state.screenshot_progress_message = None
        if issues:
            add_message(state, AUDIT_COMPLETE_MESSAGE, audit_issues=issues, is_audit_message=True)
        else:
            logger.warning(f"[ORCHESTRATOR] No issues parsed from audit response for session {state.session_id}")
            add_message(state, AUDIT_EMPTY_MESSAGE)
        notify()
        return issues

    async def _run_redesign(
        self,
        state: SessionState,
        progress: GenerationProgress,
        pacer: ModelCallPacer,
        notify: Callable[[], None]
    ) -> str:
        responses = state.responses
        image_base64: Optional[str] = None
        audit_issues: List[str] = []

        if has_current_url(state):
            state.is_capturing_screenshot = True
            state.screenshot_progress_message = SCREENSHOT_PROGRESS_MESSAGE
            progress.log_event(GenerationPhase.CAPTURING_SCREENSHOT, SCREENSHOT_PROGRESS_MESSAGE)
            notify()

            screenshot = await self.screenshots.capture(
                responses.redesign_current_url,
                extract_text=bool(responses.redesign_reuse_content)
            )
            if screenshot.text:
                responses.redesign_extracted_text = screenshot.text
            image_base64 = _encode_image(screenshot.image)

            references = await self._analyze_stored_references(
                responses.redesign_references_and_competitors, state, progress, pacer, notify
            )
            audit_issues = await self._run_audit(state, progress, pacer, image_base64, notify)
        else:
            references = await self._analyze_stored_references(
                responses.redesign_references_and_competitors, state, progress, pacer, notify
            )

        self._set_progress(
            state, progress, GenerationPhase.GENERATING_SPECIFICATION, "generating_spec_redesign", notify
        )
        prompt = build_redesign_spec_prompt(responses, audit_issues, references, image_base64 is not None)
        specification = await self._generate_specification(prompt, pacer, image_base64=image_base64)
        return await self._generate_html(specification, True, state, progress, pacer, notify)
