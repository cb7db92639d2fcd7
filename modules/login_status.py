from utils.request_util import create_options


async def handler(query, request):
    result = await request('POST', '/api/w/nuser/account/get', {}, create_options(query))
    return {
        'status': 200,
        'body': {'data': result.body},
        'cookie': result.cookie,
    }
