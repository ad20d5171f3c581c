from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile

from controllers.translate_controller import (
	get_overlay,
	get_session,
	list_languages,
	reset_session,
	translate_image,
)
from models.languages import DEFAULT_LANGUAGE

router = APIRouter(prefix="/api")


@router.post("/translate")
async def translate_route(
	request: Request,
	image: Optional[UploadFile] = File(None),
	target_language: str = Form(DEFAULT_LANGUAGE),
):
	"""Extract, translate, and contextualize the text in an image."""
	try:
		return await translate_image(request, image, target_language)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/translate/session")
async def session_route(request: Request):
	return await get_session(request)


@router.post("/translate/reset")
async def reset_route(request: Request):
	return await reset_session(request)


@router.get("/translate/session/overlay")
async def overlay_route(request: Request):
	"""Return the JPEG with the translation drawn over the source image."""
	try:
		return await get_overlay(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/languages")
async def languages_route():
	return await list_languages()
