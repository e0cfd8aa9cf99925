from flask import Blueprint, request

from ..helpers import respond
from ..pagination import build_pagination_response, parse_pagination_params, parse_search_params


def create_blueprint(storage) -> Blueprint:
    bp = Blueprint("media", __name__)

    @bp.route("/upload", methods=["POST"])
    def upload_single():
        file_info = storage.save(request.files.get("file"), request.args.get("mediaType"))
        return respond("File uploaded successfully.", file_info)

    @bp.route("/upload/multiple", methods=["POST"])
    def upload_multiple():
        files_info = storage.save_many(request.files.getlist("files"), request.args.get("mediaType"))
        return respond(f"{len(files_info)} files uploaded successfully.", files_info)

    @bp.route("/delete/<filename>", methods=["DELETE"])
    def delete_file(filename: str):
        storage.delete(filename, request.args.get("mediaType"))
        return respond("File deleted successfully.")

    @bp.route("/list", methods=["GET"])
    def list_files():
        params = parse_pagination_params(request.args, default_limit=20)
        search_params = parse_search_params(request.args, default_sort="uploadDate")
        files = storage.list_files(request.args.get("mediaType"), search_params["search"])

        sort_by = search_params["sort_by"]
        if files and sort_by not in files[0]:
            sort_by = "uploadDate"
        files.sort(key=lambda item: item[sort_by], reverse=search_params["sort_order"] < 0)

        total_items = len(files)
        page_files = files[params["skip"] : params["skip"] + params["limit"]]
        message = "Media files retrieved successfully" if total_items else "No files found."
        return respond(
            message,
            page_files,
            pagination=build_pagination_response(params["page"], total_items, params["limit"]),
        )

    return bp
