from utils.request_util import create_options


async def handler(query, request):
    return await request('POST', f"/api/v1/user/detail/{query.get('uid')}", {}, create_options(query))
