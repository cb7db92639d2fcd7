from utils.request_util import create_options


async def handler(query, request):
    return await request('POST', '/api/v1/radio/get', {}, create_options(query))
