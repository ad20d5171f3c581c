"""Session lifecycle for image translation: capture -> pipeline -> overlay -> history."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Tuple

from models.errors import (
	AuthUnavailableError,
	InvalidImageError,
	NoImageError,
	PersistenceError,
	RenderError,
)
from models.history_entry import HistoryRecord
from models.languages import DEFAULT_LANGUAGE, validate_language
from models.session_models import PipelineRun, PipelineState, SessionStage, TranslationSession
from models.transport_image import TransportImage
from services.history_store import HistoryStore
from services.image_codec import ImageCodec
from services.inference_pipeline import InferencePipeline
from services.overlay_renderer import OverlayRenderer

LOGGER = logging.getLogger(__name__)

_STAGE_FOR_STATE = {
	PipelineState.EXTRACTING: SessionStage.EXTRACTING,
	PipelineState.TRANSLATING: SessionStage.TRANSLATING,
	PipelineState.CONTEXTUALIZING: SessionStage.CONTEXTUALIZING,
}


class SessionController:
	"""Own the current TranslationSession and drive it through every stage.

	Only one session is current at a time. Starting a new one (or resetting)
	bumps the generation counter; any continuation of an older session checks
	its generation after each await and stops without touching the current one.
	"""

	def __init__(
		self,
		pipeline: InferencePipeline,
		renderer: OverlayRenderer,
		codec: ImageCodec,
		history: HistoryStore,
		thumbnail_width: int = 100,
	) -> None:
		self.pipeline = pipeline
		self.renderer = renderer
		self.codec = codec
		self.history = history
		self.thumbnail_width = thumbnail_width
		self._generation = 0
		self._session = TranslationSession(generation=0, target_language=DEFAULT_LANGUAGE)

	@property
	def current(self) -> TranslationSession:
		return self._session

	def is_current(self, session: TranslationSession) -> bool:
		return session.generation == self._generation

	async def start(self, image_bytes: Optional[bytes], target_language: str) -> TranslationSession:
		"""Translate the captured image and return the session it ran in.

		Raises:
			NoImageError: If no image bytes were captured.
			ValueError: If the target language is not supported.
		"""
		if not image_bytes or not image_bytes.strip():
			raise NoImageError()
		validate_language(target_language)

		self._generation += 1
		session = TranslationSession(
			generation=self._generation,
			source_image=self.codec.encode(image_bytes),
			target_language=target_language,
		)
		self._session = session
		LOGGER.info("Session %d started (target=%s)", session.generation, target_language)

		run = await self.pipeline.run(
			session.source_image,
			target_language,
			on_update=lambda update: self._on_pipeline_update(session, update),
		)
		if not self.is_current(session):
			LOGGER.info("Session %d superseded during inference; result ignored", session.generation)
			return session

		if run.aborted:
			session.fail(getattr(run.error, "user_message", str(run.error)))
			return session

		if session.translated_text is None:
			session.advance(SessionStage.DONE)
			return session

		session.advance(SessionStage.RENDERING)
		overlay, thumbnail = await self._render(session)
		if not self.is_current(session):
			LOGGER.info("Session %d superseded during rendering; overlay dropped", session.generation)
			return session
		session.overlay_image = overlay
		if overlay is None:
			session.degraded.append("overlay")

		session.advance(SessionStage.PERSISTING)
		await self._persist(session, thumbnail)
		if self.is_current(session):
			session.advance(SessionStage.DONE)
		return session

	def reset(self) -> TranslationSession:
		"""Drop the current session; late continuations of it become no-ops."""
		language = self._session.target_language
		self._generation += 1
		self._session = TranslationSession(generation=self._generation, target_language=language)
		LOGGER.info("Session reset (generation=%d)", self._generation)
		return self._session

	def _on_pipeline_update(self, session: TranslationSession, run: PipelineRun) -> None:
		if not self.is_current(session) or run.aborted:
			return
		session.apply(run)
		if run.context_degraded and "context" not in session.degraded:
			session.degraded.append("context")
		stage = _STAGE_FOR_STATE.get(run.state)
		if stage is not None:
			session.advance(stage)

	async def _render(self, session: TranslationSession) -> Tuple[Optional[TransportImage], Optional[TransportImage]]:
		"""Draw the overlay and thumbnail off the event loop; failures degrade to None."""
		try:
			overlay = await asyncio.to_thread(self.renderer.render, session.source_image, session.translated_text)
		except RenderError as exc:
			LOGGER.warning("Session %d: overlay unavailable: %s", session.generation, exc)
			return None, None

		try:
			thumbnail = await asyncio.to_thread(self.codec.thumbnail, session.source_image, self.thumbnail_width)
		except InvalidImageError as exc:
			LOGGER.warning("Session %d: thumbnail unavailable: %s", session.generation, exc)
			thumbnail = None
		return overlay, thumbnail

	async def _persist(self, session: TranslationSession, thumbnail: Optional[TransportImage]) -> None:
		record = HistoryRecord(
			original_text=session.extracted_text or "",
			translated_text=session.translated_text or "",
			contextual_info=session.contextual_info or "",
			target_language=session.target_language,
			thumbnail=thumbnail.data if thumbnail is not None else None,
		)
		try:
			entry_id = await self.history.append(record)
		except (PersistenceError, AuthUnavailableError) as exc:
			LOGGER.error("Session %d: history not saved: %s", session.generation, exc)
			if self.is_current(session):
				session.persistence_error = exc.user_message
			return
		if self.is_current(session):
			session.history_id = entry_id
