from __future__ import annotations

from flask import Response, current_app, jsonify, render_template

from ..payloads import payload_formdata
from ..services.content_store import ContentStore, resolve_download
from ..services.generation import open_stage_generators
from ..services.pipeline import BookRequestError, PipelineStageError, generate_document
from ..services.remote_caller import GenerationUnavailableError
from ..services.stages import PromptConfigurationError
from . import bp
from .forms import OverviewForm


@bp.route("/")
def index():
    return render_template("main/universal.html", form=OverviewForm())


@bp.route("/generate", methods=["POST"])
async def generate():
    form = OverviewForm(formdata=payload_formdata())
    overview = form.overview.data
    if not form.validate_on_submit() or not isinstance(overview, str) or not overview.strip():
        return "Overview required.", 400

    try:
        async with open_stage_generators() as stages:
            slug = await generate_document(stages, ContentStore(), overview)
    except BookRequestError as exc:
        return str(exc), 400
    except PipelineStageError:
        return "Generation failed.", 503
    except (GenerationUnavailableError, PromptConfigurationError) as exc:
        current_app.logger.error("Remote generation is unavailable: %s", exc)
        return "Generation failed.", 503
    except Exception:  # pragma: no cover
        current_app.logger.exception("Unexpected error while generating content")
        return "We couldn't generate content right now. Please try again.", 500

    return jsonify({"slug": slug})


@bp.route("/download/<path:filename>")
def download(filename: str):
    target = resolve_download(filename)
    store = ContentStore()

    content = None
    for key in target.keys:
        content = store.get(key)
        if content is not None:
            break

    if not content:
        return "Not found", 404

    return Response(
        content,
        mimetype=target.mimetype,
        headers={"Content-Disposition": f'attachment; filename="{target.filename}"'},
    )
