import pytest
from unittest.mock import MagicMock

from g2b_monitor.models import UNKNOWN_AGENCY
from g2b_monitor.parser import ResultExtractor, derive_id


@pytest.fixture
def mock_config():
    return {'target': {'agency_name': '국토지리정보원'}}


@pytest.fixture
def extractor(mock_config):
    return ResultExtractor(mock_config)


def make_row(title="수치지형도 갱신", href="/detail?bidno=20240512345&bidseq=00",
             date="2024/05/12 10:00", agency="국토지리정보원", cells=None):
    return {
        'cells': cells if cells is not None else ["1", "물품", title, date, agency, "-"],
        'title': title,
        'href': href,
    }


def test_derive_id_from_bidno():
    assert derive_id("https://x/detail?bidno=20240512345&bidseq=00", "t", "d") == "20240512345"


def test_derive_id_fallback():
    assert derive_id("javascript:void(0)", "수치지형도", "2024/05/12") == "수치지형도_2024/05/12"


def test_derive_id_requires_ampersand():
    # The bid number is only recognised when followed by another parameter
    assert derive_id("https://x/detail?bidno=123", "t", "d") == "t_d"


def test_parse_row_valid(extractor):
    item = extractor.parse_row(make_row(), base_url="https://www.g2b.go.kr/list")

    assert item.id == "20240512345"
    assert item.title == "수치지형도 갱신"
    assert item.link == "https://www.g2b.go.kr/detail?bidno=20240512345&bidseq=00"
    assert item.date == "2024/05/12 10:00"
    assert item.agency == "국토지리정보원"


def test_parse_row_skips_short_rows(extractor):
    row = make_row(cells=["1", "a", "b", "c"])
    assert extractor.parse_row(row) is None


def test_parse_row_skips_rows_without_title(extractor):
    row = make_row()
    row['title'] = None
    assert extractor.parse_row(row) is None


def test_parse_row_unknown_agency(extractor):
    row = make_row(agency="서울특별시")
    item = extractor.parse_row(row)
    assert item.agency == UNKNOWN_AGENCY


def test_parse_row_agency_by_column_marker(extractor):
    row = make_row(agency="수요기관: 서울특별시")
    assert extractor.parse_row(row).agency == "수요기관: 서울특별시"


def test_parse_row_missing_date(extractor):
    row = make_row(date="미정")
    item = extractor.parse_row(row)
    assert item.date == ""
    assert item.id == "20240512345"


def test_parse_row_collapses_title_whitespace(extractor):
    row = make_row(title="수치지형도\n   갱신", href="")
    item = extractor.parse_row(row)
    assert item.title == "수치지형도 갱신"
    assert item.id == "수치지형도 갱신_2024/05/12 10:00"


def test_parse_rows_preserves_order(extractor):
    rows = [
        make_row(title="A", href="/d?bidno=1&x=1"),
        {'cells': ["데이터가 존재하지 않습니다"], 'title': None, 'href': None},
        make_row(title="B", href="/d?bidno=2&x=1"),
    ]
    items = extractor.parse_rows(rows)
    assert [i.id for i in items] == ["1", "2"]


def test_extract_from_frame(extractor):
    frame = MagicMock()
    frame.url = "https://www.g2b.go.kr/list"
    frame.evaluate.return_value = {'no_data': False, 'rows': [make_row()]}

    items = extractor.extract(frame)

    assert len(items) == 1
    assert items[0].link.startswith("https://www.g2b.go.kr/")


def test_extract_no_data(extractor):
    frame = MagicMock()
    frame.url = "https://www.g2b.go.kr/list"
    frame.evaluate.return_value = {
        'no_data': True,
        'rows': [{'cells': ["조회된 데이터가 없습니다"], 'title': None, 'href': None}],
    }

    assert extractor.extract(frame) == []
