from address_ingest.cli import parse_args


def test_parse_args_defaults():
    args = parse_args(["load"])
    assert args.command == "load"
    assert args.text is None
    assert args.overlay_config_dir is None
    assert args.force is False


def test_parse_args_accepts_query_text():
    args = parse_args(["search", "Range Rd", "--redis-url", "redis://cache:6379"])
    assert args.text == "Range Rd"
    assert args.redis_url == "redis://cache:6379"
