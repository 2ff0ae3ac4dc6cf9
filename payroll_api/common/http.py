# payroll_api/common/http.py
from flask import jsonify

def ok(data=None, status=200, message=None, errors=None, **meta):
    payload = {"success": True, "message": message or "OK", "data": data}
    if errors:
        payload["errors"] = errors
    if meta:
        payload["meta"] = meta
    return jsonify(payload), status

def fail(message="Bad Request", status=400, code=None, detail=None, errors=None):
    err = {"message": message}
    if code: err["code"] = code
    if detail: err["detail"] = detail
    payload = {"success": False, "message": message, "error": err}
    if errors: payload["errors"] = errors
    return jsonify(payload), status
