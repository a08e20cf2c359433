from __future__ import annotations

from flask import current_app, g, jsonify, request

from tmarks.api import api_bp
from tmarks.extensions import db
from tmarks.models import ApiToken, Bookmark, Share, TabGroup, TabGroupItem, Tag, User
from tmarks.services.common import is_absolute_url, to_bool
from tmarks.services.import_export import BookmarkImportError, get_parser
from tmarks.services.import_export.exporter import build_export
from tmarks.services.importer import persist_import
from tmarks.services.security import api_auth_required
from tmarks.services.statistics import collect_statistics


def _read_upload() -> str | bytes | None:
    upload = request.files.get("file")
    if upload:
        return upload.read()
    data = request.get_data()
    return data or None


def _parse_upload():
    content = _read_upload()
    if content is None:
        error = jsonify({"error": "file field or request body is required"})
        return None, None, (error, 400)

    source_format = request.args.get("format") or request.form.get("format") or "json"
    try:
        parser = get_parser(
            source_format, max_depth=current_app.config["IMPORT_MAX_DEPTH"]
        )
        data = parser.parse(content)
    except BookmarkImportError as exc:
        current_app.logger.info("Rejected %s import: %s", source_format, exc)
        return None, None, (jsonify({"error": f"import failed: {exc}"}), 400)

    return data, parser.validate(data), None


def _get_user_group_or_404(user_id: int, group_id: int):
    group = TabGroup.query.filter_by(id=group_id, user_id=user_id).first()
    if not group or group.is_deleted:
        return None, (jsonify({"error": "tab group not found"}), 404)
    return group, None


@api_bp.errorhandler(413)
def upload_too_large(_error):
    limit = current_app.config["IMPORT_MAX_BYTES"]
    return jsonify({"error": f"upload exceeds {limit} bytes"}), 413


@api_bp.route("/health")
def health():
    return jsonify({"status": "ok", "service": "TMarks"})


@api_bp.route("/auth/bootstrap-admin", methods=["POST"])
def bootstrap_admin_api():
    if User.query.count() > 0:
        return jsonify({"error": "bootstrap already completed"}), 409

    payload = request.get_json(silent=True) or {}
    username = (payload.get("username") or "").strip()
    password = payload.get("password") or ""
    if not username or not password:
        return jsonify({"error": "username and password are required"}), 400

    admin = User(username=username, is_admin=True, is_active=True)
    admin.set_password(password)
    db.session.add(admin)
    db.session.commit()
    return jsonify({"status": "created", "user_id": admin.id}), 201


@api_bp.route("/auth/token", methods=["POST"])
def create_token_with_credentials():
    payload = request.get_json(silent=True) or {}
    username = (payload.get("username") or "").strip()
    password = payload.get("password") or ""
    token_name = (payload.get("token_name") or "TMarks API Token").strip()

    user = User.query.filter_by(username=username).first()
    if not user or not user.is_active or not user.check_password(password):
        return jsonify({"error": "invalid credentials"}), 401

    token, token_hash = ApiToken.issue_token()
    row = ApiToken(user_id=user.id, name=token_name, token_hash=token_hash)
    db.session.add(row)
    db.session.commit()
    return jsonify({"token": token, "token_name": token_name, "user_id": user.id})


@api_bp.route("/tags", methods=["GET"])
@api_auth_required()
def tags_list():
    user = g.api_user
    tags = Tag.query.filter_by(user_id=user.id).order_by(Tag.name.asc()).all()
    return jsonify({"items": [tag.as_dict() for tag in tags]})


@api_bp.route("/bookmarks", methods=["GET"])
@api_auth_required()
def bookmarks_list_api():
    user = g.api_user
    include_deleted = to_bool(request.args.get("include_deleted"), default=False)
    query = Bookmark.query.filter_by(user_id=user.id)
    if not include_deleted:
        query = query.filter(Bookmark.deleted_at.is_(None))
    items = query.order_by(Bookmark.updated_at.desc()).all()
    return jsonify({"items": [item.as_dict() for item in items]})


@api_bp.route("/import", methods=["POST"])
@api_auth_required()
def import_bookmarks_api():
    user = g.api_user
    data, result, error = _parse_upload()
    if error:
        return error

    if not result.valid:
        return (
            jsonify(
                {
                    "error": f"{len(result.errors)} records need correction",
                    "validation": result.as_dict(),
                    "metadata": data.metadata.as_dict(),
                }
            ),
            422,
        )

    try:
        summary = persist_import(user.id, data)
    except Exception:
        current_app.logger.exception("Import for user %s failed", user.id)
        return jsonify({"error": "import failed: could not store bookmarks"}), 500

    return jsonify(
        {
            "status": "done",
            "summary": summary.as_dict(),
            "metadata": data.metadata.as_dict(),
            "warnings": [issue.as_dict() for issue in result.warnings],
        }
    )


@api_bp.route("/import/validate", methods=["POST"])
@api_auth_required()
def import_validate_api():
    data, result, error = _parse_upload()
    if error:
        return error
    return jsonify({"data": data.as_dict(), "validation": result.as_dict()})


@api_bp.route("/export", methods=["GET"])
@api_auth_required()
def export_api():
    user = g.api_user
    response = jsonify(build_export(user.id))
    if to_bool(request.args.get("download"), default=False):
        response.headers["Content-Disposition"] = (
            'attachment; filename="tmarks-export.json"'
        )
    return response


@api_bp.route("/tab-groups", methods=["GET"])
@api_auth_required()
def tab_groups_list():
    user = g.api_user
    groups = (
        TabGroup.query.filter_by(user_id=user.id, is_deleted=False)
        .order_by(TabGroup.created_at.desc())
        .all()
    )
    return jsonify({"items": [group.as_dict() for group in groups]})


@api_bp.route("/tab-groups", methods=["POST"])
@api_auth_required()
def tab_groups_create():
    user = g.api_user
    payload = request.get_json(silent=True) or {}
    title = (payload.get("title") or "").strip() or "Untitled Group"
    items = payload.get("items") or []
    if not isinstance(items, list):
        return jsonify({"error": "items must be an array"}), 400

    group = TabGroup(user_id=user.id, title=title)
    for position, item in enumerate(items):
        url = (item.get("url") or "").strip() if isinstance(item, dict) else ""
        if not is_absolute_url(url):
            return jsonify({"error": f"items[{position}].url is not a valid URL"}), 400
        group.items.append(
            TabGroupItem(
                title=(item.get("title") or "").strip() or None,
                url=url,
                position=position,
            )
        )
    db.session.add(group)
    db.session.commit()
    return jsonify(group.as_dict(include_items=True)), 201


@api_bp.route("/tab-groups/<int:group_id>", methods=["DELETE"])
@api_auth_required()
def tab_groups_delete(group_id: int):
    user = g.api_user
    group, error = _get_user_group_or_404(user.id, group_id)
    if error:
        return error
    group.is_deleted = True
    if group.share:
        db.session.delete(group.share)
    db.session.commit()
    return jsonify({"status": "deleted"})


@api_bp.route("/tab-groups/<int:group_id>/share", methods=["POST"])
@api_auth_required()
def tab_groups_share(group_id: int):
    user = g.api_user
    group, error = _get_user_group_or_404(user.id, group_id)
    if error:
        return error
    if group.share:
        return jsonify({"share_token": group.share.share_token})

    share = Share(user_id=user.id, group_id=group.id, share_token=Share.issue_token())
    db.session.add(share)
    db.session.commit()
    return jsonify({"share_token": share.share_token}), 201


@api_bp.route("/tab-groups/<int:group_id>/share", methods=["DELETE"])
@api_auth_required()
def tab_groups_unshare(group_id: int):
    user = g.api_user
    group, error = _get_user_group_or_404(user.id, group_id)
    if error:
        return error
    if not group.share:
        return jsonify({"error": "tab group is not shared"}), 404
    db.session.delete(group.share)
    db.session.commit()
    return jsonify({"status": "revoked"})


@api_bp.route("/shares/<token>", methods=["GET"])
def shared_group_view(token: str):
    share = Share.query.filter_by(share_token=token).first()
    if not share or share.group.is_deleted:
        return jsonify({"error": "share not found"}), 404
    payload = share.group.as_dict(include_items=True)
    payload.pop("share_token", None)
    return jsonify(payload)


@api_bp.route("/statistics", methods=["GET"])
@api_auth_required()
def statistics_api():
    user = g.api_user
    days = request.args.get(
        "days", default=current_app.config["STATISTICS_DEFAULT_DAYS"], type=int
    )
    days = max(1, min(days, 365))
    return jsonify(collect_statistics(user.id, days))
