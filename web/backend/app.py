"""
SecureStore Web API
===================
Flask JSON front for a FileStore. Each route maps to one store operation
and reports the store's result kind plus a readable message.
"""

import os
from functools import wraps

from flask import Flask, current_app, jsonify, request

from securestore import FileStore, Result, StoreConfig, StoreError, configure_logging

# ============================================================
# RESULT MAPPING
# ============================================================

_STATUS_CODES = {
    StoreError.OK: 200,
    StoreError.INVALID_ARGUMENT: 400,
    StoreError.INVALID_PATH: 400,
    StoreError.HASHING_NOT_ENABLED: 400,
    StoreError.NOT_REGISTERED: 404,
    StoreError.FILE_DOES_NOT_EXIST: 404,
    StoreError.FILE_ALREADY_EXISTS: 409,
    StoreError.FILE_CORRUPTED: 409,
    StoreError.IO_ERROR: 500,
}


def result_response(result: Result, success_status: int = 200, **extra):
    body = {"error": result.error.value, "message": result.message}
    body.update(extra)
    status = success_status if result.is_ok else _STATUS_CODES[result.error]
    return jsonify(body), status


def get_store() -> FileStore:
    return current_app.extensions["securestore"]


def json_body(*required):
    """Reject requests whose JSON body lacks the ``required`` string fields."""
    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            data = request.get_json(silent=True)
            if not isinstance(data, dict):
                return jsonify({"error": "INVALID_ARGUMENT", "message": "JSON object body required"}), 400
            missing = [field for field in required if not isinstance(data.get(field), str)]
            if missing:
                return jsonify({
                    "error": "INVALID_ARGUMENT",
                    "message": f"Missing or non-string fields: {', '.join(missing)}",
                }), 400
            return f(data, *args, **kwargs)
        return wrapper
    return decorator


# ============================================================
# APP FACTORY
# ============================================================

def create_app(store: FileStore) -> Flask:
    """Build the API around an initialized store."""
    app = Flask(__name__)
    app.extensions["securestore"] = store

    @app.route("/api/health")
    def health():
        return jsonify({
            "status": "healthy",
            "registered_files": len(get_store()),
        })

    @app.route("/api/files", methods=["GET"])
    def list_files():
        return jsonify({"files": get_store().names})

    @app.route("/api/files", methods=["POST"])
    @json_body("name")
    def create_file(data):
        content = data.get("content", "")
        directory = data.get("directory")
        if not isinstance(content, str) or not isinstance(directory, (str, type(None))):
            return result_response(Result.fail(StoreError.INVALID_ARGUMENT))

        result = get_store().create_file(
            data["name"],
            content,
            directory=directory or None,
            extension=data.get("extension"),
            encrypt=bool(data.get("encrypt", False)),
            hashing=bool(data.get("hashing", False)),
            compress=bool(data.get("compress", False)),
        )
        return result_response(result, success_status=201, name=data["name"])

    @app.route("/api/files/<name>", methods=["GET"])
    def read_file(name):
        result = get_store().read_file(name)
        if result.value is None:
            return result_response(result)
        # Content is still served when only the witness mismatches.
        return jsonify({
            "error": result.error.value,
            "message": result.message,
            "content": result.value,
            "warning": not result.is_ok,
        }), 200

    @app.route("/api/files/<name>", methods=["PUT"])
    @json_body("content")
    def update_file(data, name):
        return result_response(get_store().update_file(name, data["content"]))

    @app.route("/api/files/<name>/append", methods=["POST"])
    @json_body("content")
    def append_file(data, name):
        return result_response(get_store().append_file(name, data["content"]))

    @app.route("/api/files/<name>/move", methods=["POST"])
    @json_body("directory")
    def move_file(data, name):
        return result_response(get_store().change_file_path(name, data["directory"]))

    @app.route("/api/files/<name>/hash", methods=["GET"])
    def check_hash(name):
        result = get_store().check_file_hash(name)
        return result_response(result, intact=result.is_ok)

    @app.route("/api/files/<name>", methods=["DELETE"])
    def delete_file(name):
        return result_response(get_store().delete_file(name))

    return app


# ============================================================
# ENTRY POINT
# ============================================================

if __name__ == "__main__":
    config = StoreConfig.load()
    configure_logging(config)
    with FileStore(config) as file_store:
        create_app(file_store).run(host="127.0.0.1", port=int(os.environ.get("PORT", 5000)))
