"""
Enveloppes de réponse JSON
v1: {ok, data} / {ok, title, message}; legacy: {message|error, ...}
"""

from flask import jsonify


def ok(data=None, status_code=200):
    """Réponse v1 en succès"""
    return jsonify({'ok': True, 'data': data}), status_code


def err(status_code, title, message, **extra):
    """Réponse v1 en échec"""
    return jsonify({'ok': False, 'title': title, 'message': message, **extra}), status_code


def legacy_ok(message, status_code=200, **fields):
    return jsonify({'message': message, **fields}), status_code


def legacy_err(error, status_code, **fields):
    return jsonify({'error': error, **fields}), status_code
