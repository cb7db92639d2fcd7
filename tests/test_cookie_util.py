from utils.cookie_util import cookie_to_header, cookie_to_json, parse_cookie_header, safe_decode


def test_parse_simple_pairs():
    assert parse_cookie_header('a=1; b=2') == {'a': '1', 'b': '2'}


def test_parse_drops_fragment_without_equals():
    assert parse_cookie_header('a=1; b') == {'a': '1'}
    assert 'b' not in parse_cookie_header('a=1;b')


def test_parse_drops_leading_and_trailing_equals():
    assert parse_cookie_header('=1') == {}
    assert parse_cookie_header('a=') == {}
    assert parse_cookie_header('a=; b=2; =3') == {'b': '2'}


def test_parse_trailing_whitespace_ends_last_pair():
    assert parse_cookie_header('a=1; b=2   ') == {'a': '1', 'b': '2'}


def test_parse_decodes_and_trims():
    assert parse_cookie_header('na%20me= v%3D1 ; x=y') == {'na me': 'v=1', 'x': 'y'}


def test_parse_keeps_value_that_does_not_decode():
    assert parse_cookie_header('a=%E0%A4%A') == {'a': '%E0%A4%A'}


def test_parse_empty_or_missing_header():
    assert parse_cookie_header('') == {}
    assert parse_cookie_header(None) == {}


def test_parse_is_repeatable():
    raw = 'MUSIC_U=abc; __csrf=def; os=pc'
    first = parse_cookie_header(raw)
    second = parse_cookie_header(raw)
    assert first == second
    first['MUSIC_U'] = 'changed'
    assert parse_cookie_header(raw)['MUSIC_U'] == 'abc'


def test_later_duplicate_wins():
    assert parse_cookie_header('a=1; a=2') == {'a': '2'}


def test_safe_decode():
    assert safe_decode('%E4%BD%A0%E5%A5%BD') == '你好'
    assert safe_decode('%ZZ') == '%ZZ'
    assert safe_decode('%FF') == '%FF'


def test_cookie_to_json():
    assert cookie_to_json('') == {}
    assert cookie_to_json(None) == {}
    assert cookie_to_json('MUSIC_U=x; os=pc') == {'MUSIC_U': 'x', 'os': 'pc'}


def test_cookie_to_header():
    assert cookie_to_header({'MUSIC_U': 'a b', 'os': 'pc'}) == 'MUSIC_U=a%20b; os=pc'
    assert cookie_to_header('raw=1') == 'raw=1'
    assert cookie_to_header({}) == ''
    assert cookie_to_header(None) == ''


def test_safe_decode_keeps_only_bad_sequences():
    assert safe_decode('%E4%BD%A0%FF') == '你%FF'
    assert safe_decode('%FF%E5%A5%BD') == '%FF好'
    assert parse_cookie_header('name=%E4%BD%A0%FF') == {'name': '你%FF'}
