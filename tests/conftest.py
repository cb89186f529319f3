"""Pytest configuration and shared fixtures."""

import os
import sys

import pytest
from unittest.mock import Mock

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import eustatscore as est  # noqa: E402
from eustatscore.http import RateLimitedFetcher, RateLimiter  # noqa: E402


class FakeClock:
    """Controllable clock; ``sleep`` advances time instead of blocking."""

    def __init__(self, start=1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def create_mock_response(data, status_code=200, content_type="application/json", reason="OK"):
    """Create a mock response object."""
    mock_response = Mock()
    mock_response.status_code = status_code
    mock_response.reason = reason

    if content_type == "application/json":
        mock_response.json.return_value = data
        mock_response.text = str(data) if not isinstance(data, str) else data
    else:
        mock_response.text = data
        mock_response.json.side_effect = ValueError("No JSON object could be decoded")

    return mock_response


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def fetcher(fake_clock):
    """Fetcher whose rate limiter uses the fake clock (no real sleeping)."""
    limiter = RateLimiter(clock=fake_clock, sleep=fake_clock.sleep)
    return RateLimitedFetcher(rate_limiter=limiter)


@pytest.fixture
def client(fetcher):
    """EurostatClient sharing the fake-clock fetcher."""
    return est.EurostatClient(fetcher=fetcher)


@pytest.fixture
def sample_toc_txt_response():
    """Sample TOC TXT response: header plus 4 data lines."""
    return (
        '"title"\t"code"\t"type"\t"last update of data"\t"last table structure change"\t'
        '"data start"\t"data end"\t"values"\n'
        '"Database by themes"\t"data"\t"folder"\t" "\t" "\t" "\t" "\t\n'
        '"    Gross domestic product (GDP) and main components"\t"nama_10_gdp"\t"dataset"\t'
        '"26.06.2025"\t"14.04.2025"\t"1975"\t"2024"\t1049888\n'
        '"    Population on 1 January by age and sex"\t"demo_pjan"\t"dataset"\t'
        '"15.06.2025"\t"10.06.2025"\t"1960"\t"2024"\t15000\n'
        '"    GDP per capita in PPS"\t"tec00114"\t"table"\t"20.06.2025"\t" "\t"2014"\t"2024"\t420\n'
    )


@pytest.fixture
def scenario_jsonstat_response():
    """geo (DE, FR) x time (2020-2022) with two recorded values."""
    return {
        "version": "2.0",
        "class": "dataset",
        "label": "Test indicator",
        "source": "ESTAT",
        "updated": "2025-06-26T23:00:00+0200",
        "value": {"0": 100, "5": 142},
        "id": ["geo", "time"],
        "size": [2, 3],
        "dimension": {
            "geo": {
                "label": "Geopolitical entity (reporting)",
                "category": {
                    "index": {"FR": 1, "DE": 0},
                    "label": {"DE": "Germany", "FR": "France"},
                },
            },
            "time": {
                "label": "Time",
                "category": {
                    "index": {"2022": 2, "2020": 0, "2021": 1},
                    "label": {"2020": "2020", "2021": "2021", "2022": "2022"},
                },
            },
        },
    }


@pytest.fixture
def sample_jsonstat_response():
    """Sample JSON-stat response with status flags."""
    return {
        "version": "2.0",
        "class": "dataset",
        "label": "GDP Test Data",
        "source": "ESTAT",
        "updated": "2025-06-26T23:00:00+0200",
        "value": {"0": 1000.5, "1": 1100.2, "2": 1200.8, "3": 1050.1},
        "status": {"1": "p", "3": "e"},
        "id": ["geo", "time"],
        "size": [2, 2],
        "dimension": {
            "geo": {
                "label": "Geography",
                "category": {
                    "index": {"SE": 0, "NO": 1},
                    "label": {"SE": "Sweden", "NO": "Norway"},
                },
            },
            "time": {
                "label": "Time",
                "category": {
                    "index": {"2020": 0, "2021": 1},
                    "label": {"2020": "2020", "2021": "2021"},
                },
            },
        },
    }


@pytest.fixture
def sample_structure_xml():
    """Dataflow with descendants: two coded dimensions and a time dimension."""
    return """<?xml version="1.0" encoding="UTF-8"?>
<m:Structure xmlns:m="http://www.sdmx.org/resources/sdmxml/schemas/v2_1/message"
             xmlns:s="http://www.sdmx.org/resources/sdmxml/schemas/v2_1/structure"
             xmlns:c="http://www.sdmx.org/resources/sdmxml/schemas/v2_1/common">
  <m:Header><m:ID>DF1</m:ID></m:Header>
  <m:Structures>
    <s:Codelists>
      <s:Codelist id="GEO" agencyID="ESTAT" version="1.0">
        <c:Name xml:lang="en">Geopolitical entity</c:Name>
        <s:Code id="DE"><c:Name xml:lang="de">Deutschland</c:Name><c:Name xml:lang="en">Germany</c:Name></s:Code>
        <s:Code id="FR"><c:Name xml:lang="en">France</c:Name></s:Code>
        <s:Code id="XK"><!-- no English name --><c:Name xml:lang="fr">Kosovo*</c:Name></s:Code>
      </s:Codelist>
      <s:Codelist id="UNIT" agencyID="ESTAT" version="1.0">
        <c:Name xml:lang="en">Unit of measure</c:Name>
        <s:Code id="CP_MEUR"><c:Name xml:lang="en">Current prices, million euro</c:Name></s:Code>
        <s:Code id="PC_GDP"><c:Name xml:lang="en">Percentage of gross domestic product (GDP)</c:Name></s:Code>
      </s:Codelist>
    </s:Codelists>
    <s:Concepts>
      <s:ConceptScheme id="NAMA_10_GDP" agencyID="ESTAT">
        <s:Concept id="UNIT"><c:Name xml:lang="en">Unit of measure</c:Name></s:Concept>
        <s:Concept id="GEO"><c:Name xml:lang="en">Geopolitical entity (reporting)</c:Name></s:Concept>
      </s:ConceptScheme>
    </s:Concepts>
    <s:Dataflows>
      <s:Dataflow id="NAMA_10_GDP" agencyID="ESTAT" version="1.0">
        <c:Annotations><c:Annotation><c:AnnotationTitle>x</c:AnnotationTitle></c:Annotation></c:Annotations>
        <c:Name xml:lang="en">Gross domestic product (GDP) and main components</c:Name>
      </s:Dataflow>
    </s:Dataflows>
    <s:DataStructures>
      <s:DataStructure id="NAMA_10_GDP" agencyID="ESTAT" version="1.0">
        <s:DataStructureComponents>
          <s:DimensionList id="DimensionDescriptor">
            <s:Dimension id="unit" position="1">
              <s:ConceptIdentity><Ref id="UNIT" maintainableParentID="NAMA_10_GDP"/></s:ConceptIdentity>
              <s:LocalRepresentation><s:Enumeration><Ref id="UNIT" package="codelist"/></s:Enumeration></s:LocalRepresentation>
            </s:Dimension>
            <s:Dimension id="geo" position="2">
              <s:ConceptIdentity><Ref id="GEO"/></s:ConceptIdentity>
              <s:LocalRepresentation><s:Enumeration><Ref id="GEO" package="codelist"/></s:Enumeration></s:LocalRepresentation>
            </s:Dimension>
            <s:TimeDimension id="TIME_PERIOD" position="3">
              <s:ConceptIdentity><Ref id="TIME_PERIOD"/></s:ConceptIdentity>
              <s:LocalRepresentation><s:TextFormat textType="ObservationalTimePeriod"/></s:LocalRepresentation>
            </s:TimeDimension>
          </s:DimensionList>
          <s:AttributeList id="AttributeDescriptor">
            <s:Attribute id="OBS_FLAG">
              <s:AttributeRelationship><s:Dimension><Ref id="geo"/></s:Dimension></s:AttributeRelationship>
            </s:Attribute>
          </s:AttributeList>
        </s:DataStructureComponents>
      </s:DataStructure>
    </s:DataStructures>
  </m:Structures>
</m:Structure>"""


@pytest.fixture
def sample_geo_xml():
    """Small GEO codelist document."""
    return """<?xml version="1.0" encoding="UTF-8"?>
<m:Structure xmlns:m="message" xmlns:s="structure" xmlns:c="common">
  <m:Structures><s:Codelists>
    <s:Codelist id="GEO" agencyID="ESTAT" version="24.0">
      <c:Name xml:lang="en">Geopolitical entity</c:Name>
      <s:Code id="EU27_2020"><c:Name xml:lang="en">European Union - 27 countries (from 2020)</c:Name></s:Code>
      <s:Code id="EA20"><c:Name xml:lang="en">Euro area - 20 countries (from 2023)</c:Name></s:Code>
      <s:Code id="DE"><c:Name xml:lang="en">Germany</c:Name></s:Code>
      <s:Code id="DE2"><c:Name xml:lang="en">Bayern</c:Name></s:Code>
      <s:Code id="DE21"><c:Name xml:lang="en">Oberbayern</c:Name></s:Code>
      <s:Code id="DE212"><c:Name xml:lang="en">München, Kreisfreie Stadt</c:Name></s:Code>
      <s:Code id="AT"><c:Name xml:lang="en">Österreich</c:Name></s:Code>
      <s:Code id="FR"><c:Name xml:lang="en">France</c:Name></s:Code>
      <s:Code id="FRL"><c:Name xml:lang="en">Provence-Alpes-Côte d&apos;Azur</c:Name></s:Code>
    </s:Codelist>
  </s:Codelists></m:Structures>
</m:Structure>"""
