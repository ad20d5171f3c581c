"""Session domain models for image translation runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from models.transport_image import TransportImage


class SessionStage(str, Enum):
	IDLE = "Idle"
	EXTRACTING = "Extracting"
	TRANSLATING = "Translating"
	CONTEXTUALIZING = "Contextualizing"
	RENDERING = "Rendering"
	PERSISTING = "Persisting"
	DONE = "Done"
	FAILED = "Failed"


_STAGE_ORDER = {stage: index for index, stage in enumerate(SessionStage)}


class PipelineState(str, Enum):
	IDLE = "Idle"
	EXTRACTING = "Extracting"
	TRANSLATING = "Translating"
	CONTEXTUALIZING = "Contextualizing"
	DONE = "Done"
	ABORTED = "Aborted"


@dataclass
class PipelineRun:
	"""Results of one extract -> translate -> contextualize run."""

	state: PipelineState = PipelineState.IDLE
	extracted_text: Optional[str] = None
	translated_text: Optional[str] = None
	contextual_info: Optional[str] = None
	notice: Optional[str] = None
	error: Optional[Exception] = None
	context_degraded: bool = False

	@property
	def aborted(self) -> bool:
		return self.state == PipelineState.ABORTED


@dataclass
class TranslationSession:
	"""Transient state of one translate() call, owned by the SessionController.

	`generation` identifies the session; continuations compare it with the
	controller's current generation before touching shared state.
	"""

	generation: int
	source_image: Optional[TransportImage] = None
	target_language: str = "English"
	stage: SessionStage = SessionStage.IDLE
	extracted_text: Optional[str] = None
	translated_text: Optional[str] = None
	contextual_info: Optional[str] = None
	overlay_image: Optional[TransportImage] = None
	notice: Optional[str] = None
	error: Optional[str] = None
	persistence_error: Optional[str] = None
	history_id: Optional[str] = None
	degraded: List[str] = field(default_factory=list)

	def advance(self, stage: SessionStage) -> None:
		"""Move to a later stage; moving backwards is a programming error."""
		if _STAGE_ORDER[stage] < _STAGE_ORDER[self.stage]:
			raise ValueError(f"Cannot move session from {self.stage.value} back to {stage.value}")
		self.stage = stage

	def apply(self, run: PipelineRun) -> None:
		"""Copy stage results that are set; fields are never rolled back mid-run."""
		for name in ("extracted_text", "translated_text", "contextual_info", "notice"):
			value = getattr(run, name)
			if value is not None:
				setattr(self, name, value)

	def fail(self, message: str) -> None:
		self.stage = SessionStage.FAILED
		self.error = message
		self.extracted_text = None
		self.translated_text = None
		self.contextual_info = None
		self.overlay_image = None

	def to_json(self) -> Dict[str, Any]:
		return {
			"generation": self.generation,
			"stage": self.stage.value,
			"target_language": self.target_language,
			"extracted_text": self.extracted_text,
			"translated_text": self.translated_text,
			"contextual_info": self.contextual_info,
			"has_overlay": self.overlay_image is not None,
			"notice": self.notice,
			"error": self.error,
			"persistence_error": self.persistence_error,
			"history_id": self.history_id,
			"degraded": list(self.degraded),
		}
