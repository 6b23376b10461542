"""Celery task for extracting recipes from uploaded photos."""

import asyncio
import logging
from datetime import UTC, datetime

from src.celery_app import app as celery_app
from src.database import SessionLocal
from src.models.enums import ImportStatus
from src.models.recipe_image_import import RecipeImageImport
from src.services.exceptions import RecipeIngestionError
from src.services.image_encoder import decode_image
from src.services.recipe_ingestion import RecipeIngestionService, list_category_choices
from src.services.vision import VisionService

logger = logging.getLogger(__name__)


@celery_app.task(name="tasks.process_recipe_image_import")
def process_recipe_image_import(import_id: int, image_data_b64: str, media_type: str) -> dict:
    """Extract a candidate recipe from a photo and store it for review.

    One attempt per upload: a failed import is retried by uploading again.

    Args:
        import_id: ID of the RecipeImageImport record
        image_data_b64: Base64-encoded image data
        media_type: MIME type of the image

    Returns:
        dict with processing result
    """
    db = SessionLocal()
    try:
        recipe_import = (
            db.query(RecipeImageImport).filter(RecipeImageImport.id == import_id).first()
        )
        if not recipe_import:
            logger.error(f"RecipeImageImport {import_id} not found")
            return {"error": "Import not found"}

        recipe_import.status = ImportStatus.PROCESSING
        db.commit()

        logger.info(f"Processing recipe image import {import_id}")

        service = RecipeIngestionService(db, SessionLocal, VisionService())
        try:
            image = decode_image(image_data_b64, media_type)
            candidate = asyncio.run(service.extract(image, list_category_choices(db)))
        except RecipeIngestionError as e:
            logger.warning(f"Recipe image import {import_id} failed: {e}")
            recipe_import.status = ImportStatus.FAILED
            recipe_import.error_message = str(e)
            recipe_import.processed_at = datetime.now(UTC)
            db.commit()
            return {"error": str(e)}

        recipe_import.candidate = candidate.model_dump(mode="json")
        recipe_import.status = ImportStatus.COMPLETED
        recipe_import.processed_at = datetime.now(UTC)
        db.commit()

        logger.info(f"Recipe image import {import_id} processed successfully")
        return {"success": True, "issues": len(candidate.issues)}

    except Exception as e:
        logger.exception(f"Error processing recipe image import {import_id}")
        db.rollback()
        recipe_import = (
            db.query(RecipeImageImport).filter(RecipeImageImport.id == import_id).first()
        )
        if recipe_import:
            recipe_import.status = ImportStatus.FAILED
            recipe_import.error_message = str(e)
            db.commit()
        return {"error": str(e)}
    finally:
        db.close()
