# Daily check-in: type 0 is the mobile client, 1 the desktop client

from utils.request_util import create_options


async def handler(query, request):
    data = {'type': query.get('type', 0)}
    return await request('POST', '/api/point/dailyTask', data, create_options(query))
