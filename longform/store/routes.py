from flask import Response, current_app, render_template

from ..services.content_store import ContentStore
from . import bp


@bp.route("/store")
def browse():
    rows = ContentStore().previews()
    return render_template("store/browser.html", rows=rows)


@bp.route("/store/raw/<path:key>")
def raw(key: str):
    value = ContentStore().get(key)
    if value is None:
        return "Key not found", 404
    return Response(value, mimetype="text/plain")


@bp.route("/store/<path:key>", methods=["DELETE"])
def delete(key: str):
    if ContentStore().delete(key):
        current_app.logger.info("Deleted content record %s", key)
    return "", 204
