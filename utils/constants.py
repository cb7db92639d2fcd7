class Headers:
    REQUEST_ID = 'X-Request-ID'
    CACHE_BYPASS = ('x-apicache-bypass', 'x-apicache-force-fetch')
    JSON_CONTENT_TYPE = 'application/json; charset=utf-8'


class Defaults:
    PORT = 3000
    CACHE_TTL_SECONDS = 120
    UPSTREAM_BASE_URL = 'https://music.163.com'
    MODULE_SUFFIX = '.py'
    MODULE_ATTRIBUTE = 'handler'
    SECURE_COOKIE_SUFFIX = '; SameSite=None; Secure'
    IPV4_MAPPED_PREFIX = '::ffff:'
    DIST_NAME = 'cloudmusic-gateway'


class Messages:
    NOT_FOUND = 'Not Found'
    LOGIN_REQUIRED = '需要登录'
    BAD_REQUEST = 'Bad Request'
    UNEXPECTED = 'Internal Server Error'


class UpstreamCodes:
    LOGIN_REQUIRED = '301'
    # Upstream business codes that still carry a usable payload
    TREATED_AS_OK = (201, 302, 400, 502, 800, 801, 802, 803)
