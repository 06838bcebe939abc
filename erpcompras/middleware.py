"""Request helpers shared by the JSON blueprints."""
from functools import wraps
from flask import g, jsonify, request
from erpcompras.exceptions import ValidationError


def envelope(data=None, message=None, status=200):
    """
    Build the standard JSON response: {success, message?, data?}.

    Returns:
        tuple (response, status_code)
    """
    body = {'success': 200 <= status < 400}
    if message:
        body['message'] = message
    if data is not None:
        body['data'] = data
    return jsonify(body), status


def require_json(f):
    """
    Decorator: require a JSON object body.

    The parsed body is exposed as g.json_body. Malformed or non-object
    bodies are rejected with a ValidationError (400).
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            raise ValidationError('El cuerpo de la solicitud debe ser un objeto JSON')
        g.json_body = body
        return f(*args, **kwargs)

    return decorated_function
