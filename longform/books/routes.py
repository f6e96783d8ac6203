from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List, Tuple

from flask import current_app, jsonify, render_template

from ..payloads import form_error_message, payload_formdata, request_payload
from ..services.content_store import ContentStore, ContentStoreError
from ..services.generation import open_stage_generators
from ..services.pipeline import (
    BookPipeline,
    BookRequestError,
    PipelineStageError,
    assemble_book,
    book_slug,
    parse_chapter_count,
    persist_book,
    validate_book_request,
)
from ..services.remote_caller import GenerationUnavailableError
from ..services.stages import ChapterMeta, GeneratedChapter, PromptConfigurationError, parse_outline
from . import bp
from .forms import BookRequestForm

PipelineAction = Callable[[BookPipeline], Awaitable[Dict[str, Any]]]


@bp.route("/book-from-keywords")
def keywords_page():
    return render_template("books/keywords.html", form=BookRequestForm())


@bp.route("/generate-book", methods=["POST"])
async def generate_book():
    form = BookRequestForm(formdata=payload_formdata())
    if not form.validate_on_submit():
        return jsonify({"error": form_error_message(form)}), 400
    try:
        keywords, chapter_count = validate_book_request(form.keywords.data, form.chapters.data)
    except BookRequestError as exc:
        return jsonify({"error": str(exc)}), 400

    async def action(pipeline: BookPipeline) -> Dict[str, Any]:
        result = await pipeline.run(keywords, chapter_count)
        return {"slug": result.slug}

    body, status = await _run_pipeline(action)
    return jsonify(body), status


@bp.route("/book/overview", methods=["POST"])
async def book_overview():
    keywords = request_payload().get("keywords")
    if not isinstance(keywords, str) or not keywords.strip():
        return jsonify({"error": "keywords required"}), 400

    async def action(pipeline: BookPipeline) -> Dict[str, Any]:
        return {"overview": await pipeline.overview(keywords.strip())}

    body, status = await _run_pipeline(action)
    return jsonify(body), status


@bp.route("/book/outline", methods=["POST"])
async def book_outline():
    payload = request_payload()
    overview = payload.get("overview")
    if not isinstance(overview, str) or not overview.strip():
        return jsonify({"error": "overview and chapters required"}), 400
    try:
        chapter_count = parse_chapter_count(payload.get("chapters"))
    except BookRequestError as exc:
        return jsonify({"error": str(exc)}), 400

    async def action(pipeline: BookPipeline) -> Dict[str, Any]:
        outline = await pipeline.outline(overview, chapter_count)
        return {"outline": _outline_payload(outline)}

    body, status = await _run_pipeline(action)
    return jsonify(body), status


@bp.route("/book/chapter", methods=["POST"])
async def book_chapter():
    payload = request_payload()
    overview = payload.get("overview")
    chapter_entries = parse_outline([payload.get("chapter")])
    try:
        index = int(payload.get("index"))
        total = int(payload.get("total"))
    except (TypeError, ValueError):
        return jsonify({"error": "index and total must be integers"}), 400

    if not isinstance(overview, str) or not overview.strip() or not chapter_entries:
        return jsonify({"error": "overview and chapter required"}), 400
    try:
        parse_chapter_count(total)
    except BookRequestError as exc:
        return jsonify({"error": f"total {exc}"}), 400
    if index < 1 or total < index:
        return jsonify({"error": "index must be between 1 and total"}), 400

    async def action(pipeline: BookPipeline) -> Dict[str, Any]:
        chapter = await pipeline.chapter(overview, chapter_entries[0], index, total)
        return {"index": chapter.index, "text": chapter.text}

    body, status = await _run_pipeline(action)
    return jsonify(body), status


@bp.route("/book/assemble", methods=["POST"])
def book_assemble():
    payload = request_payload()
    overview = payload.get("overview")
    keywords = payload.get("keywords") if isinstance(payload.get("keywords"), str) else ""
    outline = parse_outline(payload.get("outline"))
    chapter_texts = payload.get("chapters")

    if not isinstance(overview, str) or not overview.strip() or not outline:
        return jsonify({"error": "overview and outline required"}), 400
    if not isinstance(chapter_texts, list) or not all(isinstance(text, str) and text.strip() for text in chapter_texts):
        return jsonify({"error": "chapters must be a list of chapter texts"}), 400

    chapters = [GeneratedChapter(index=index, text=text) for index, text in enumerate(chapter_texts, start=1)]
    try:
        parse_chapter_count(len(outline))
        document = assemble_book(overview, outline, chapters)
        slug = book_slug(outline, keywords)
        persist_book(ContentStore(), slug, overview, outline, document)
    except BookRequestError as exc:
        return jsonify({"error": str(exc)}), 400
    except ContentStoreError:
        current_app.logger.exception("Unable to persist assembled book")
        return jsonify({"error": "We couldn't store the book right now. Please try again."}), 500

    return jsonify({"slug": slug})


async def _run_pipeline(action: PipelineAction) -> Tuple[Dict[str, Any], int]:
    try:
        async with open_stage_generators() as stages:
            return await action(BookPipeline(stages, ContentStore())), 200
    except BookRequestError as exc:
        return {"error": str(exc)}, 400
    except PipelineStageError as exc:
        return {"error": str(exc), "stage": exc.stage}, 503
    except (GenerationUnavailableError, PromptConfigurationError) as exc:
        current_app.logger.error("Remote generation is unavailable: %s", exc)
        return {"error": str(exc)}, 503
    except Exception:  # pragma: no cover
        current_app.logger.exception("Unexpected error while running the book pipeline")
        return {"error": "We couldn't generate the book right now. Please try again."}, 500


def _outline_payload(outline: List[ChapterMeta]) -> List[Dict[str, str]]:
    return [meta.to_dict() for meta in outline]
