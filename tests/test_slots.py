from voicecmd.tools.slots import coerce_date, coerce_parameters, coerce_value, detect_priority, is_valid_url

from conftest import REF


def test_priority_is_lowercased_enum():
    assert coerce_value("priority", "HIGH", REF) == "high"
    assert coerce_value("priority", "urgent", REF) is None


def test_malformed_url_is_dropped():
    assert coerce_value("url", "not a url", REF) is None
    assert coerce_value("url", "ftp://example.com/file", REF) is None
    assert coerce_value("url", "https://example.com/a.", REF) == "https://example.com/a"
    assert is_valid_url("http://example.com")


def test_integers():
    assert coerce_value("videoNumber", "5", REF) == 5
    assert coerce_value("videoNumber", "0", REF) is None
    assert coerce_value("progress", "75%", REF) == 75
    assert coerce_value("progress", 0, REF) == 0
    assert coerce_value("progress", 101, REF) is None
    assert coerce_value("progress", 62.5, REF) is None
    assert coerce_value("progress", True, REF) is None


def test_filter_synonyms():
    assert coerce_value("filter", "Late", REF) == "overdue"
    assert coerce_value("filter", "this week", REF) == "this week"


def test_zero_progress_survives_parameter_coercion():
    params = coerce_parameters("update_goal_progress", {"title": "Learn React", "progress": 0}, REF)
    assert params == {"title": "Learn React", "progress": 0}


def test_fields_outside_the_action_are_dropped():
    params = coerce_parameters("create_task", {"title": "A", "videoNumber": 3, "title2": "x"}, REF)
    assert params == {"title": "A"}


def test_unparseable_date_dropped():
    params = coerce_parameters("create_task", {"title": "A", "deadline": "sometime"}, REF)
    assert "deadline" not in params


def test_lenient_dates_use_dateparser():
    assert coerce_date("03/15/2025", REF) is None
    assert coerce_date("03/15/2025", REF, lenient=True) == "2025-03-15"
    assert coerce_date("tomorrow", REF, lenient=True) == "2025-02-11"


def test_detect_priority():
    assert detect_priority("add task Call Client ASAP") == "high"
    assert detect_priority("add task Tidy Desk whenever") == "low"
    assert detect_priority("add task Tidy Desk") is None
