"""
Flask routes for the CAP web service
"""

import logging

from flask import Blueprint, current_app, request, jsonify

from .. import compact
from ..alert import Alert
from ..constants import CAPVersion, LATEST_VERSION
from ..errors import CAPError
from ..upgrade import into_latest

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__)


def _request_xml() -> str:
    """
    CAP XML from the request.

    Accepts a raw body (Content-Type: application/xml, text/xml or text/plain)
    or JSON with an 'xml' field.
    """
    if request.content_type and ('xml' in request.content_type or 'text/plain' in request.content_type):
        return request.get_data(as_text=True)
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return ''
    xml = data.get('xml')
    return xml if isinstance(xml, str) else ''


def _error(e: CAPError):
    logger.info('Rejected CAP request: %s', e)
    result = {'success': False}
    result.update(e.to_dict())
    return jsonify(result), 400


def _no_xml():
    return jsonify({
        'success': False,
        'error': 'No CAP XML provided'
    }), 400


@api_bp.route('/cap/status', methods=['GET'])
def cap_status():
    """Supported CAP versions and their namespaces."""
    return jsonify({
        'available': True,
        'latest': LATEST_VERSION.value,
        'versions': {version.value: version.namespace for version in CAPVersion},
    })


@api_bp.route('/cap/parse', methods=['POST'])
def parse_cap_xml():
    """
    Parse CAP XML and return structured data.

    Accepts:
        - JSON with 'xml' field containing CAP XML string
        - Plain text CAP XML (Content-Type: application/xml or text/xml)

    Returns:
        Version and compact form of the alert
    """
    xml_content = _request_xml()
    if not xml_content:
        return _no_xml()

    try:
        alert = Alert.parse(xml_content)
    except CAPError as e:
        return _error(e)

    return jsonify({
        'success': True,
        'version': alert.version.value,
        'identifier': alert.identifier,
        'alert': compact.to_dict(alert)['alert'],
    })


@api_bp.route('/cap/validate', methods=['POST'])
def validate_cap():
    """
    Validate CAP XML.

    An invalid document is a successful request with 'valid': false and
    the error's kind, message, path and version.
    """
    xml_content = _request_xml()
    if not xml_content:
        return _no_xml()

    try:
        alert = Alert.parse(xml_content)
    except CAPError as e:
        logger.info('CAP document failed validation: %s', e)
        return jsonify({
            'success': True,
            'valid': False,
            'issues': [e.to_dict()],
        })

    return jsonify({
        'success': True,
        'valid': True,
        'version': alert.version.value,
        'issues': [],
    })


@api_bp.route('/cap/upgrade', methods=['POST'])
def upgrade_cap():
    """
    Upgrade CAP XML of any version to CAP 1.2.

    Returns:
        The source version and the CAP 1.2 document
    """
    xml_content = _request_xml()
    if not xml_content:
        return _no_xml()

    try:
        alert = Alert.parse(xml_content)
        latest = into_latest(alert)
    except CAPError as e:
        return _error(e)

    return jsonify({
        'success': True,
        'from_version': alert.version.value,
        'version': LATEST_VERSION.value,
        'cap_xml': latest.to_xml(pretty=current_app.config['CAP_PRETTY_PRINT']),
    })


@api_bp.route('/cap/generate', methods=['POST'])
def generate_cap():
    """
    Generate CAP XML from the compact form.

    Request JSON:
        version: str - CAP version ('1.0', '1.1' or '1.2')
        alert: dict - alert fields, as returned by /cap/parse

    Returns:
        CAP XML string
    """
    data = request.get_json(silent=True)
    if not data:
        return jsonify({
            'success': False,
            'error': 'No alert provided'
        }), 400

    try:
        alert = compact.from_dict(data)
        cap_xml = alert.to_xml(pretty=current_app.config['CAP_PRETTY_PRINT'])
    except CAPError as e:
        return _error(e)

    return jsonify({
        'success': True,
        'version': alert.version.value,
        'cap_xml': cap_xml,
    })
