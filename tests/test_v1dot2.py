"""
Tests for CAP v1.2 parsing and generation
"""

import pytest
import sys
import os
import string
import xml.etree.ElementTree as ET
from datetime import datetime, timedelta, timezone
from hypothesis import given, strategies as st, settings

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from oasiscap import v1dot1, v1dot2
from oasiscap.constants import CAPVersion
from oasiscap.errors import DocumentProjectionError, SchemaError, GeometryError, GeometryRule
from oasiscap.fields import Reference, ValuePair
from oasiscap.geo import Point, Polygon, Circle

FIXTURES = os.path.join(os.path.dirname(__file__), 'fixtures')


def load_fixture(name):
    with open(os.path.join(FIXTURES, name), 'rb') as f:
        return f.read()


def alert_xml(info='', status='Actual', extra=''):
    return f'''<?xml version="1.0" encoding="UTF-8"?>
<alert xmlns="{v1dot2.NAMESPACE}">
  <identifier>TEST-1</identifier>
  <sender>test@example.com</sender>
  <sent>2024-01-15T10:00:00-05:00</sent>
  <status>{status}</status>
  <msgType>Alert</msgType>
  <scope>Public</scope>
  {extra}
  {info}
</alert>'''


def info_xml(certainty='Likely', extra=''):
    return f'''<info>
    <category>Met</category>
    <event>Test Event</event>
    <urgency>Expected</urgency>
    <severity>Minor</severity>
    <certainty>{certainty}</certainty>
    {extra}
  </info>'''


def area_xml(extra):
    return f'<area><areaDesc>Somewhere</areaDesc>{extra}</area>'


def make_alert(**overrides):
    kwargs = dict(
        identifier='TEST-1',
        sender='test@example.com',
        sent=datetime(2024, 1, 15, 15, 0, tzinfo=timezone.utc),
        status=v1dot2.Status.ACTUAL,
        msg_type=v1dot2.MessageType.ALERT,
        scope=v1dot2.Scope.PUBLIC,
    )
    kwargs.update(overrides)
    return v1dot2.Alert(**kwargs)


def make_info(**overrides):
    kwargs = dict(
        categories=[v1dot2.Category.MET],
        event='Test Event',
        urgency=v1dot2.Urgency.EXPECTED,
        severity=v1dot2.Severity.MINOR,
        certainty=v1dot2.Certainty.LIKELY,
    )
    kwargs.update(overrides)
    return v1dot2.Info(**kwargs)


def child_tags(element):
    return [child.tag.split('}')[1] for child in element]


class TestParse:
    """Tests for reading CAP 1.2 documents."""

    def test_homeland_security_advisory(self):
        """Test parsing the HSAS example alert."""
        alert = v1dot2.Alert.parse(load_fixture('v1dot2_homeland_security.xml'))

        assert alert.identifier == '43b080713727'
        assert alert.sender == 'hsas@dhs.gov'
        assert alert.sent == datetime(2003, 4, 2, 14, 39, 1, tzinfo=timezone(timedelta(hours=-5)))
        assert alert.status is v1dot2.Status.ACTUAL
        assert alert.msg_type is v1dot2.MessageType.ALERT
        assert alert.scope is v1dot2.Scope.PUBLIC
        assert alert.addresses == []
        assert len(alert.info) == 1

        info = alert.info[0]
        assert info.categories == [v1dot2.Category.SECURITY]
        assert info.certainty is v1dot2.Certainty.LIKELY
        assert info.language is None
        assert info.effective_language == 'en-US'
        assert info.parameters == [ValuePair('HSAS', 'ORANGE')]
        assert info.web == 'http://www.dhs.gov/dhspublic/display?theme=29'
        assert info.resources[0].mime_type == 'image/gif'
        assert info.areas[0].area_desc == 'U.S. nationwide and interests worldwide'
        assert info.areas[0].polygons == []

    def test_tsunami_update(self):
        """Test parsing an update with references, codes and a circle."""
        alert = v1dot2.Alert.parse(load_fixture('v1dot2_tsunami_update.xml'))

        assert alert.msg_type is v1dot2.MessageType.UPDATE
        assert alert.source == 'WCATWC'
        assert alert.codes == ['IPAWSv1.0']
        assert alert.incidents == ['mg5a94']
        assert [reference.identifier for reference in alert.references] == [
            'PAAQ-1-mg5a94', 'PAAQ-2-mg5a94', 'PAAQ-3-mg5a94'
        ]
        assert alert.references[2] == Reference(
            'wcatwc@noaa.gov', 'PAAQ-3-mg5a94', datetime(2013, 1, 5, 10, 17, 31, tzinfo=timezone.utc)
        )

        info = alert.info[0]
        assert info.response_types == [v1dot2.ResponseType.NONE]
        assert info.onset == datetime(2013, 1, 5, 10, 58, 23, tzinfo=timezone.utc)
        assert len(info.parameters) == 2
        assert info.areas[0].circles == [Circle(Point(55.3, -134.9), 0)]

    @pytest.mark.parametrize('response', ['Avoid', 'AllClear'])
    def test_new_response_types(self, response):
        """Test response types added in CAP 1.2."""
        alert = v1dot2.Alert.parse(alert_xml(info_xml(extra=f'<responseType>{response}</responseType>')))
        assert alert.info[0].response_types == [v1dot2.ResponseType(response)]

    def test_very_likely_read_as_likely(self):
        """Test the deprecated certainty is accepted on input."""
        alert = v1dot2.Alert.parse(alert_xml(info_xml(certainty='Very Likely')))
        assert alert.info[0].certainty is v1dot2.Certainty.LIKELY

    def test_draft_status(self):
        alert = v1dot2.Alert.parse(alert_xml(status='Draft'))
        assert alert.status is v1dot2.Status.DRAFT

    def test_alert_without_info(self):
        alert = v1dot2.Alert.parse(alert_xml())
        assert alert.info == []

    def test_wrong_version_document(self):
        """Test a CAP 1.1 document is rejected by the 1.2 parser."""
        with pytest.raises(DocumentProjectionError):
            v1dot2.Alert.parse(load_fixture('v1dot1_thunderstorm.xml'))


class TestParseErrors:
    """Tests for error kinds and paths on invalid CAP 1.2 input."""

    def test_missing_mime_type(self):
        """Test resource/mimeType is required in CAP 1.2."""
        document = alert_xml(info_xml(extra='<resource><resourceDesc>Map</resourceDesc></resource>'))
        with pytest.raises(SchemaError) as excinfo:
            v1dot2.Alert.parse(document)

        assert excinfo.value.path == 'alert/info[0]/resource[0]/mimeType'
        assert excinfo.value.version is CAPVersion.V1_2

    def test_missing_identifier(self):
        document = alert_xml().replace('<identifier>TEST-1</identifier>', '')
        with pytest.raises(SchemaError) as excinfo:
            v1dot2.Alert.parse(document)
        assert excinfo.value.path == 'alert/identifier'

    def test_invalid_identifier(self):
        document = alert_xml().replace('TEST-1', 'TEST,1')
        with pytest.raises(SchemaError) as excinfo:
            v1dot2.Alert.parse(document)
        assert excinfo.value.path == 'alert/identifier'

    def test_invalid_status(self):
        with pytest.raises(SchemaError) as excinfo:
            v1dot2.Alert.parse(alert_xml(status='Bogus'))
        assert excinfo.value.path == 'alert/status'
        assert 'Bogus' in str(excinfo.value)

    def test_invalid_sent(self):
        document = alert_xml().replace('2024-01-15T10:00:00-05:00', '2024-01-15T10:00:00')
        with pytest.raises(SchemaError) as excinfo:
            v1dot2.Alert.parse(document)
        assert excinfo.value.path == 'alert/sent'

    def test_duplicate_element(self):
        """Test an element that may appear once is rejected when repeated."""
        document = alert_xml(extra='<note>one</note><note>two</note>')
        with pytest.raises(DocumentProjectionError) as excinfo:
            v1dot2.Alert.parse(document)
        assert excinfo.value.path == 'alert/note'

    def test_unknown_element(self):
        """Test an unknown element in the CAP namespace is rejected."""
        with pytest.raises(DocumentProjectionError) as excinfo:
            v1dot2.Alert.parse(alert_xml(info_xml(extra='<severityLevel>3</severityLevel>')))
        assert excinfo.value.path == 'alert/info[0]'
        assert 'severityLevel' in str(excinfo.value)

    def test_foreign_element_ignored(self):
        """Test elements from other namespaces are skipped."""
        extra = '<x:signature xmlns:x="http://example.com/sig">abc</x:signature>'
        alert = v1dot2.Alert.parse(alert_xml(extra=extra))
        assert alert.identifier == 'TEST-1'

    def test_missing_category(self):
        document = alert_xml(info_xml()).replace('<category>Met</category>', '')
        with pytest.raises(SchemaError) as excinfo:
            v1dot2.Alert.parse(document)
        assert excinfo.value.path == 'alert/info[0]/category'

    def test_invalid_response_type(self):
        with pytest.raises(SchemaError) as excinfo:
            v1dot2.Alert.parse(alert_xml(info_xml(extra='<responseType>Run</responseType>')))
        assert excinfo.value.path == 'alert/info[0]/responseType[0]'

    def test_polygon_not_closed(self):
        """Test geometry errors carry the rule and the element path."""
        area = area_xml('<polygon>1,1 2,2 3,1 1,1</polygon><polygon>1,1 2,2 3,3 4,4</polygon>')
        with pytest.raises(GeometryError) as excinfo:
            v1dot2.Alert.parse(alert_xml(info_xml(extra=area)))

        error = excinfo.value
        assert error.rule is GeometryRule.NOT_CLOSED
        assert error.path == 'alert/info[0]/area[0]/polygon[1]'
        assert error.version is CAPVersion.V1_2
        assert error.to_dict()['rule'] == 'not_closed'

    def test_circle_radius_out_of_range(self):
        area = area_xml('<circle>10,10 25000</circle>')
        with pytest.raises(GeometryError) as excinfo:
            v1dot2.Alert.parse(alert_xml(info_xml(extra=area)))
        assert excinfo.value.rule is GeometryRule.RADIUS_OUT_OF_RANGE
        assert excinfo.value.path == 'alert/info[0]/area[0]/circle[0]'

    def test_ceiling_without_altitude(self):
        area = area_xml('<ceiling>1000</ceiling>')
        with pytest.raises(SchemaError) as excinfo:
            v1dot2.Alert.parse(alert_xml(info_xml(extra=area)))
        assert excinfo.value.path == 'alert/info[0]/area[0]/ceiling'

    def test_invalid_digest(self):
        resource = '<resource><resourceDesc>Map</resourceDesc><mimeType>image/png</mimeType><digest>abc</digest></resource>'
        with pytest.raises(SchemaError) as excinfo:
            v1dot2.Alert.parse(alert_xml(info_xml(extra=resource)))
        assert excinfo.value.path == 'alert/info[0]/resource[0]/digest'

    def test_missing_value_name(self):
        parameter = '<parameter><value>ORANGE</value></parameter>'
        with pytest.raises(SchemaError) as excinfo:
            v1dot2.Alert.parse(alert_xml(info_xml(extra=parameter)))
        assert excinfo.value.path == 'alert/info[0]/parameter[0]/valueName'

    def test_missing_value_reads_empty(self):
        parameter = '<parameter><valueName>HSAS</valueName></parameter>'
        alert = v1dot2.Alert.parse(alert_xml(info_xml(extra=parameter)))
        assert alert.info[0].parameters == [ValuePair('HSAS', '')]

    def test_error_message_includes_location(self):
        with pytest.raises(SchemaError) as excinfo:
            v1dot2.Alert.parse(alert_xml(status='Bogus'))
        assert str(excinfo.value).endswith('at alert/status (CAP 1.2)')


class TestConstruct:
    """Tests for building CAP 1.2 alerts in code."""

    def test_valid(self):
        alert = make_alert(info=[make_info()])
        assert alert.info[0].event == 'Test Event'

    def test_invalid_identifier(self):
        with pytest.raises(SchemaError) as excinfo:
            make_alert(identifier='has space')
        assert excinfo.value.path == 'alert/identifier'
        assert excinfo.value.version is CAPVersion.V1_2

    def test_enum_from_other_version(self):
        """Test a CAP 1.1 enum member is not accepted by a 1.2 alert."""
        with pytest.raises(SchemaError) as excinfo:
            make_alert(status=v1dot1.Status.ACTUAL)
        assert excinfo.value.path == 'alert/status'

    def test_naive_sent(self):
        with pytest.raises(SchemaError) as excinfo:
            make_alert(sent=datetime(2024, 1, 15, 10, 0))
        assert excinfo.value.path == 'alert/sent'

    def test_sent_truncated_to_seconds(self):
        alert = make_alert(sent=datetime(2024, 1, 15, 10, 0, 0, 123456, tzinfo=timezone.utc))
        assert alert.sent.microsecond == 0

    def test_resource_requires_mime_type(self):
        with pytest.raises(SchemaError) as excinfo:
            v1dot2.Resource('Map', None)
        assert excinfo.value.path == 'mimeType'

    @pytest.mark.parametrize('codes', [[''], ['ok', '   ']])
    def test_empty_code_rejected(self, codes):
        with pytest.raises(SchemaError) as excinfo:
            make_alert(codes=codes)
        assert excinfo.value.path == f'alert/code[{len(codes) - 1}]'

    def test_padded_text_stripped(self):
        """Test constructed text is normalised the way parsed text is."""
        info = make_info(
            event=' Flood ',
            headline='  Flood warning\n',
            description='   ',
            parameters=[ValuePair(' HSAS ', ' ORANGE ')],
            areas=[v1dot2.Area(' Coast ', geocodes=[ValuePair('UGC', ' AKZ025 ')])],
            resources=[v1dot2.Resource(' Map ', ' image/png ')],
        )
        alert = make_alert(note=' padded ', source='', codes=[' IPAWSv1.0 '], info=[info])

        assert alert.note == 'padded'
        assert alert.source is None
        assert alert.codes == ['IPAWSv1.0']
        assert info.event == 'Flood'
        assert info.headline == 'Flood warning'
        assert info.description is None
        assert info.parameters == [ValuePair('HSAS', 'ORANGE')]
        assert info.areas[0].area_desc == 'Coast'
        assert info.resources[0].mime_type == 'image/png'

    def test_padded_text_round_trips(self):
        info = make_info(
            instruction=' Move inland. ',
            parameters=[ValuePair('EAS-ORG', ' WXR ')],
            areas=[v1dot2.Area(' Coast ')],
        )
        alert = make_alert(note=' padded ', restriction='\tinternal\n', codes=[' c '], info=[info])
        assert v1dot2.Alert.parse(alert.to_xml()) == alert

    def test_nested_error_path(self):
        """Test errors in nested blocks are reported under their parent."""
        info = make_info()
        info.areas = [v1dot2.Area('Somewhere')]
        info.areas[0].ceiling = 100.0
        with pytest.raises(SchemaError) as excinfo:
            make_alert(info=[info])
        assert excinfo.value.path == 'alert/info[0]/area[0]/ceiling'

    def test_to_xml_revalidates(self):
        """Test a mutated alert is validated again before output."""
        alert = make_alert()
        alert.sender = 'not valid'
        with pytest.raises(SchemaError):
            alert.to_xml()


class TestGenerate:
    """Tests for CAP 1.2 output."""

    def test_namespace_and_declaration(self):
        xml = make_alert().to_xml()
        assert xml.startswith('<?xml')
        root = ET.fromstring(xml)
        assert root.tag == f'{{{v1dot2.NAMESPACE}}}alert'

    def test_utc_written_as_negative_zero(self):
        xml = make_alert().to_xml()
        assert '<sent>2024-01-15T15:00:00-00:00</sent>' in xml

    def test_element_order(self):
        """Test header elements are written in schema order."""
        root = ET.fromstring(v1dot2.Alert.parse(load_fixture('v1dot2_tsunami_update.xml')).to_xml())
        assert child_tags(root) == [
            'identifier', 'sender', 'sent', 'status', 'msgType', 'source', 'scope',
            'code', 'references', 'incidents', 'info',
        ]
        assert child_tags(root.find(f'{{{v1dot2.NAMESPACE}}}info')) == [
            'category', 'event', 'responseType', 'urgency', 'severity', 'certainty',
            'onset', 'expires', 'senderName', 'headline', 'description', 'instruction',
            'web', 'parameter', 'parameter', 'area',
        ]

    def test_absent_fields_not_written(self):
        xml = make_alert(info=[make_info()]).to_xml()
        for tag in ('addresses', 'references', 'incidents', 'note', 'language', 'headline'):
            assert f'<{tag}' not in xml

    def test_canonical_numbers(self):
        area = v1dot2.Area('Sea', circles=[Circle(Point(55.3, -134.9), 0.0)], altitude=100.0, ceiling=250.5)
        xml = make_alert(info=[make_info(areas=[area])]).to_xml()
        assert '<circle>55.3,-134.9 0</circle>' in xml
        assert '<altitude>100</altitude>' in xml
        assert '<ceiling>250.5</ceiling>' in xml

    def test_compact_output(self):
        xml = make_alert().to_xml(pretty=False)
        assert '\n  <' not in xml

    def test_embedded_content(self):
        resource = v1dot2.Resource('Note', 'text/plain', deref_uri=b'hello world')
        xml = make_alert(info=[make_info(resources=[resource])]).to_xml()
        assert '<derefUri>aGVsbG8gd29ybGQ=</derefUri>' in xml

    @pytest.mark.parametrize('name', ['v1dot2_homeland_security.xml', 'v1dot2_tsunami_update.xml', 'v1dot2_lenient.xml'])
    def test_round_trip(self, name):
        """Test output parses back to an equal alert."""
        alert = v1dot2.Alert.parse(load_fixture(name))
        assert v1dot2.Alert.parse(alert.to_xml()) == alert
        assert v1dot2.Alert.parse(alert.to_xml(pretty=False)) == alert


identifiers = st.text(alphabet=string.ascii_letters + string.digits + '-.@_', min_size=1, max_size=20)
free_text = st.text(alphabet=string.ascii_letters + string.digits + ' .,;:!?&<>"\'', min_size=1, max_size=40) \
    .filter(str.strip)
timestamps = st.builds(
    lambda local, minutes: local.replace(microsecond=0, tzinfo=timezone(timedelta(minutes=minutes))),
    st.datetimes(min_value=datetime(1990, 1, 1), max_value=datetime(2100, 1, 1)),
    st.integers(min_value=-12 * 60, max_value=14 * 60),
)
points = st.builds(
    Point,
    st.floats(min_value=-90, max_value=90, allow_nan=False),
    st.floats(min_value=-180, max_value=180, allow_nan=False),
)
polygons = st.lists(points, min_size=3, max_size=6).map(lambda vertices: Polygon(vertices + vertices[:1]))
circles = st.builds(Circle, points, st.floats(min_value=0, max_value=19999, allow_nan=False))
pairs = st.builds(ValuePair, identifiers, free_text)

areas = st.builds(
    v1dot2.Area,
    area_desc=free_text,
    polygons=st.lists(polygons, max_size=2),
    circles=st.lists(circles, max_size=2),
    geocodes=st.lists(pairs, max_size=2),
)
infos = st.builds(
    v1dot2.Info,
    categories=st.lists(st.sampled_from(v1dot2.Category), min_size=1, max_size=3),
    event=free_text,
    urgency=st.sampled_from(v1dot2.Urgency),
    severity=st.sampled_from(v1dot2.Severity),
    certainty=st.sampled_from(v1dot2.Certainty),
    response_types=st.lists(st.sampled_from(v1dot2.ResponseType), max_size=2),
    headline=st.none() | free_text,
    expires=st.none() | timestamps,
    parameters=st.lists(pairs, max_size=3),
    areas=st.lists(areas, max_size=2),
)
alerts = st.builds(
    v1dot2.Alert,
    identifier=identifiers,
    sender=identifiers,
    sent=timestamps,
    status=st.sampled_from(v1dot2.Status),
    msg_type=st.sampled_from(v1dot2.MessageType),
    scope=st.sampled_from(v1dot2.Scope),
    note=st.none() | free_text,
    addresses=st.lists(free_text.filter(lambda item: '"' not in item), max_size=3),
    info=st.lists(infos, max_size=2),
)


class TestRoundTripProperty:
    """Property tests for generate-then-parse."""

    @settings(max_examples=50, deadline=None)
    @given(alerts)
    def test_parse_of_output_is_equal(self, alert):
        assert v1dot2.Alert.parse(alert.to_xml()) == alert
