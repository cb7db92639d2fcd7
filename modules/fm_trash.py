# Move a song from personal FM to the trash

from utils.request_util import create_options


async def handler(query, request):
    song_id = query.get('id')
    url = f"/api/radio/trash/add?alg=RT&songId={song_id}&time={query.get('time', 25)}"
    return await request('POST', url, {'songId': song_id}, create_options(query))
