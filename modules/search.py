from utils.request_util import create_options


async def handler(query, request):
    """Search by keywords.

    type: 1 song, 10 album, 100 artist, 1000 playlist, 1002 user,
    1004 MV, 1006 lyric, 1009 radio, 1014 video
    """
    data = {
        's': query.get('keywords', ''),
        'type': query.get('type', 1),
        'limit': query.get('limit', 30),
        'offset': query.get('offset', 0),
    }
    return await request('POST', '/api/search/get', data, create_options(query))
