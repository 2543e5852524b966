"""Sketchy - FastAPI Application.

This module defines the FastAPI application factory, all REST API routes,
and the ``main()`` CLI function that launches the uvicorn server.

Architecture
------------
- **Configuration** is read once from the environment
  (:class:`~sketchy.core.config.SketchyConfig`).
- **Services** (generation pipeline, gallery, admin) are built once by
  :func:`~sketchy.core.services.build_services` and stored on ``app.state``.
  Backend selection (local vs S3/DynamoDB, live vs mock) happens there, never
  inside a route.
- **Blocking work** (OpenAI calls, image fetches, Pillow, boto3, file I/O)
  runs in the threadpool so the event loop stays responsive.
- **Errors** derived from :class:`~sketchy.core.errors.SketchyError` are
  rendered as ``{"error": ..., "details": ...}`` with the error's status.
- **Local images** are served by FastAPI's ``StaticFiles`` under the
  configured prefix when the local backend is active.

Endpoints
---------
========  ============================  ====================================
Method    Path                          Purpose
========  ============================  ====================================
POST      ``/generate-image``           Expand prompt, generate, persist
GET       ``/gallery``                  Newest-first gallery view
DELETE    ``/clear-gallery``            Delete everything (admin)
DELETE    ``/remove-image``             Delete one image (admin)
POST      ``/reduce-gallery``           Keep the newest N images (admin)
GET       ``/health``                   Liveness check
========  ============================  ====================================

Usage
-----
CLI (installed entry point)::

    sketchy

Direct invocation::

    python -m sketchy.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from sketchy import __version__
from sketchy.api.models import GenerateRequest, ReduceGalleryRequest, RemoveImageRequest
from sketchy.api.security import require_admin
from sketchy.core.config import SketchyConfig, config
from sketchy.core.errors import InvalidRequestError, SketchyError
from sketchy.core.services import Services, build_services

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Error rendering.
# ---------------------------------------------------------------------------


async def sketchy_error_handler(request: Request, exc: SketchyError) -> JSONResponse:
    """Render a :class:`SketchyError` as ``{"error", "details"}``."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "details": exc.details},
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report request validation failures as 400 instead of 422."""
    details = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'] if part not in ('body', 'query'))}: {err['msg']}"
        for err in exc.errors()
    )
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "details": details},
    )


def _services(request: Request) -> Services:
    return request.app.state.services


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def create_app(cfg: SketchyConfig | None = None, services: Services | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        cfg: Configuration; defaults to the global
            :data:`~sketchy.core.config.config`.
        services: Pre-built services; built from *cfg* when omitted.

    Returns:
        The configured FastAPI application.
    """
    cfg = cfg or config
    services = services or build_services(cfg)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            f"Sketchy {__version__} ready (storage={cfg.resolved_storage_backend}, "
            f"live={cfg.use_openai_api})"
        )
        yield
        services.close()
        logger.info("Services closed on shutdown.")

    app = FastAPI(
        title="Sketchy",
        description="Generate images for songs and artists and browse the gallery.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = cfg
    app.state.services = services

    app.add_exception_handler(SketchyError, sketchy_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -----------------------------------------------------------------------
    # Routes.
    # -----------------------------------------------------------------------

    @app.post("/generate-image")
    async def generate_image(req: GenerateRequest, request: Request) -> dict:
        """Generate an image for a song or artist prompt.

        1. Expands the prompt (identity when expansion is disabled).
        2. Produces the image (OpenAI or mock).
        3. Derives a thumbnail and stores both artifacts.
        4. Stores the generation record.

        Returns:
            The stored record: ``imageUrl``, ``thumbnailUrl``,
            ``generatedPrompt``, ``originalPrompt`` and ``createdAt``.

        Raises:
            InvalidRequestError: 400 when the prompt is empty.
            SketchyError: 500 ``Failed to generate image`` for any upstream,
                processing or storage failure.
        """
        try:
            record = await run_in_threadpool(_services(request).generator.generate, req.prompt)
        except InvalidRequestError:
            raise
        except SketchyError as e:
            raise SketchyError("Failed to generate image", str(e)) from e
        except Exception as e:
            logger.exception("Unexpected failure while generating an image")
            raise SketchyError("Failed to generate image", str(e)) from e
        return record.to_json()

    @app.get("/gallery")
    @app.get("/api/gallery", include_in_schema=False)
    async def get_gallery(
        request: Request,
        limit: int | None = Query(default=None, ge=1),
        offset: int = Query(default=0, ge=0),
    ) -> dict:
        """Return the newest gallery items.

        Args:
            limit: Maximum number of items (at least 1), capped by
                ``SKETCHY_GALLERY_MAX_ITEMS``.  Omitted means the cap.
            offset: Number of newest items to skip.

        Returns:
            Dictionary with ``galleryItems``, ``totalItems`` and
            ``returnedItems``.  A *limit* below 1 or a negative *offset* is
            rejected with 400 ``Invalid request``.
        """
        view = await run_in_threadpool(_services(request).gallery.view, limit, offset)
        return view.to_json()

    @app.delete("/clear-gallery", dependencies=[Depends(require_admin)])
    async def clear_gallery(request: Request) -> dict:
        """Delete every image, thumbnail and record."""
        result = await run_in_threadpool(_services(request).admin.clear_all)
        return {
            "message": "Gallery cleared successfully",
            "deletedImages": result.artifacts,
            "deletedRecords": result.records,
        }

    @app.delete("/remove-image", dependencies=[Depends(require_admin)])
    async def remove_image(req: RemoveImageRequest, request: Request) -> dict:
        """Delete a single image with its thumbnail and record.

        Raises:
            NotFoundError: 404 if the image does not exist.
            StorageError: 500 if the backend delete fails.
        """
        await run_in_threadpool(_services(request).admin.remove, req.image_url)
        return {"message": "Image removed successfully"}

    @app.post("/reduce-gallery", dependencies=[Depends(require_admin)])
    async def reduce_gallery(req: ReduceGalleryRequest, request: Request) -> dict:
        """Keep the ``count`` newest images and delete the rest."""
        result = await run_in_threadpool(_services(request).admin.retain_newest, req.count)
        return {
            "message": f"Gallery reduced to {result.kept} images. Deleted {result.deleted} images.",
            "kept": result.kept,
            "deleted": result.deleted,
        }

    @app.get("/health")
    async def health() -> dict:
        """Liveness check; no authentication."""
        return {"status": "OK", "message": "Server is running"}

    # Mounted last so it cannot shadow the API routes.
    if cfg.resolved_storage_backend == "local":
        app.mount(
            cfg.static_url_prefix,
            StaticFiles(directory=str(cfg.gallery_dir)),
            name="images",
        )

    return app


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host, port and log level from :data:`~sketchy.core.config.config`
    (``SKETCHY_SERVER_HOST``, ``SKETCHY_SERVER_PORT``, ``SKETCHY_LOG_LEVEL``).
    Defaults to ``0.0.0.0:3001``.

    This function is registered as the ``sketchy`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    uvicorn.run(
        "sketchy.api.main:create_app",
        factory=True,
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
