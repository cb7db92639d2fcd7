from utils.request_util import create_options


async def handler(query, request):
    return await request('POST', '/api/logout', {}, create_options(query))
