from osdesk.pagination import Page


def test_defaults():
    page = Page.build(None, None, 35)
    assert (page.page, page.per_page, page.total_pages, page.offset) == (1, 10, 4, 0)
    assert (page.start, page.end) == (1, 10)


def test_last_page_is_partial():
    page = Page.build(4, 10, 35)
    assert page.offset == 30
    assert (page.start, page.end) == (31, 35)


def test_page_beyond_last_is_clamped():
    page = Page.build(9, 10, 35)
    assert page.page == 4


def test_invalid_values_fall_back():
    page = Page.build("x", -3, 5)
    assert (page.page, page.per_page) == (1, 10)
    page = Page.build(0, 0, 5)
    assert (page.page, page.per_page) == (1, 10)


def test_empty_result():
    page = Page.build(3, 10, 0)
    assert page.to_dict() == {"total": 0, "page": 3, "total_pages": 1, "start": 0, "end": 0}
