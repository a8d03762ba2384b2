"""Main routes - Index, language switching."""
from flask import Blueprint, jsonify, make_response, redirect, request

main_bp = Blueprint('main', __name__)


@main_bp.route('/')
def index():
    return jsonify({'service': 'auditflow', 'status': 'ok'})


@main_bp.route('/set_language/<lang>')
def set_language(lang):
    if lang not in ['en', 'fr']:
        lang = 'en'
    resp = make_response(redirect(request.referrer or '/'))
    resp.set_cookie('babel_translation', lang)
    return resp
