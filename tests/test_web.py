"""
Tests for the CAP web service
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from oasiscap import Alert
from oasiscap.constants import NAMESPACE_V1_2
from oasiscap.web import create_app

FIXTURES = os.path.join(os.path.dirname(__file__), 'fixtures')


def load_fixture(name):
    with open(os.path.join(FIXTURES, name), encoding='utf-8') as f:
        return f.read()


@pytest.fixture
def client():
    app = create_app({'TESTING': True})
    return app.test_client()


class TestStatus:
    """Tests for the status endpoint."""

    def test_versions(self, client):
        response = client.get('/api/cap/status')
        data = response.get_json()

        assert response.status_code == 200
        assert data['available'] is True
        assert data['latest'] == '1.2'
        assert data['versions']['1.0'] == 'http://www.incident.com/cap/1.0'
        assert data['versions']['1.2'] == NAMESPACE_V1_2


class TestParse:
    """Tests for the parse endpoint."""

    def test_json_body(self, client):
        response = client.post('/api/cap/parse', json={'xml': load_fixture('v1dot2_homeland_security.xml')})
        data = response.get_json()

        assert response.status_code == 200
        assert data['success'] is True
        assert data['version'] == '1.2'
        assert data['identifier'] == '43b080713727'
        assert data['alert']['info'][0]['parameters'] == [{'value_name': 'HSAS', 'value': 'ORANGE'}]

    def test_xml_body(self, client):
        response = client.post(
            '/api/cap/parse',
            data=load_fixture('v1dot0_earthquake.xml'),
            content_type='application/xml'
        )
        data = response.get_json()

        assert response.status_code == 200
        assert data['version'] == '1.0'
        assert data['alert']['password'] == 'hunter2'

    def test_no_xml(self, client):
        response = client.post('/api/cap/parse', json={})
        assert response.status_code == 400
        assert response.get_json()['success'] is False

    def test_json_array_body(self, client):
        """Test a JSON body that is not an object is treated as missing XML."""
        response = client.post('/api/cap/parse', json=[load_fixture('v1dot2_homeland_security.xml')])
        data = response.get_json()

        assert response.status_code == 400
        assert data['success'] is False
        assert data['error'] == 'No CAP XML provided'

    @pytest.mark.parametrize('value', [5, None, ['<alert/>'], {'alert': 'x'}])
    def test_xml_field_not_a_string(self, client, value):
        response = client.post('/api/cap/parse', json={'xml': value})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'No CAP XML provided'

    def test_invalid_document(self, client):
        """Test errors are returned with their kind, path and version."""
        xml = load_fixture('v1dot0_earthquake.xml').replace('<status>Actual', '<status>Draft')
        response = client.post('/api/cap/parse', json={'xml': xml})
        data = response.get_json()

        assert response.status_code == 400
        assert data['success'] is False
        assert data['kind'] == 'schema'
        assert data['path'] == 'alert/status'
        assert data['version'] == '1.0'

    def test_geometry_error(self, client):
        xml = load_fixture('v1dot1_thunderstorm.xml').replace('38.62,-119.89 38.47,-120.14', '38.62,-119.89')
        response = client.post('/api/cap/parse', json={'xml': xml})
        data = response.get_json()

        assert response.status_code == 400
        assert data['kind'] == 'geometry'
        assert data['rule'] == 'not_closed'
        assert data['path'] == 'alert/info[0]/area[0]/polygon[0]'


class TestValidate:
    """Tests for the validate endpoint."""

    def test_valid(self, client):
        response = client.post('/api/cap/validate', json={'xml': load_fixture('v1dot1_thunderstorm.xml')})
        data = response.get_json()

        assert response.status_code == 200
        assert data['valid'] is True
        assert data['version'] == '1.1'
        assert data['issues'] == []

    def test_invalid(self, client):
        response = client.post('/api/cap/validate', json={'xml': '<alert xmlns="urn:example"/>'})
        data = response.get_json()

        assert response.status_code == 200
        assert data['success'] is True
        assert data['valid'] is False
        assert data['issues'][0]['kind'] == 'document'


class TestUpgrade:
    """Tests for the upgrade endpoint."""

    def test_v1dot0_to_latest(self, client):
        response = client.post('/api/cap/upgrade', json={'xml': load_fixture('v1dot0_earthquake.xml')})
        data = response.get_json()

        assert response.status_code == 200
        assert data['from_version'] == '1.0'
        assert data['version'] == '1.2'

        alert = Alert.parse(data['cap_xml'])
        assert alert.xml_namespace == NAMESPACE_V1_2
        assert alert.identifier == 'TRI13970876.1'
        assert 'hunter2' not in data['cap_xml']

    def test_no_xml(self, client):
        response = client.post('/api/cap/upgrade', data='', content_type='text/xml')
        assert response.status_code == 400

    def test_json_string_body(self, client):
        response = client.post('/api/cap/upgrade', json='<alert/>')
        assert response.status_code == 400
        assert response.get_json()['success'] is False


class TestGenerate:
    """Tests for the generate endpoint."""

    def test_from_parse_output(self, client):
        """Test the compact form returned by parse generates the same alert."""
        xml = load_fixture('v1dot2_tsunami_update.xml')
        parsed = client.post('/api/cap/parse', json={'xml': xml}).get_json()

        response = client.post('/api/cap/generate', json={
            'version': parsed['version'],
            'alert': parsed['alert'],
        })
        data = response.get_json()

        assert response.status_code == 200
        assert data['version'] == '1.2'
        assert Alert.parse(data['cap_xml']) == Alert.parse(xml)

    def test_no_alert(self, client):
        response = client.post('/api/cap/generate', json={})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'No alert provided'

    def test_json_array_body(self, client):
        response = client.post('/api/cap/generate', json=[{'version': '1.2'}])
        data = response.get_json()

        assert response.status_code == 400
        assert data['success'] is False
        assert data['kind'] == 'schema'

    def test_invalid_alert(self, client):
        response = client.post('/api/cap/generate', json={'version': '1.2', 'alert': {'identifier': 'x'}})
        data = response.get_json()

        assert response.status_code == 400
        assert data['kind'] == 'schema'

    def test_compact_output_setting(self):
        app = create_app({'TESTING': True, 'CAP_PRETTY_PRINT': False})
        client = app.test_client()
        parsed = client.post('/api/cap/parse', json={'xml': load_fixture('v1dot2_homeland_security.xml')}).get_json()

        response = client.post('/api/cap/generate', json={'version': '1.2', 'alert': parsed['alert']})
        assert '\n  <' not in response.get_json()['cap_xml']
