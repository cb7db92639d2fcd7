import json

from utils.request_util import create_options


async def handler(query, request):
    """Details for one or more songs, ``ids`` comma separated."""
    ids = [i.strip() for i in str(query.get('ids', '')).split(',') if i.strip()]
    data = {
        'c': json.dumps([{'id': int(i) if i.isdigit() else i} for i in ids]),
    }
    return await request('POST', '/api/v3/song/detail', data, create_options(query))
