"""
测试 BilibiliClient（httpx.MockTransport 模拟 B站接口）
"""
import httpx
import pytest

from bilitube.core.exceptions import DataFetchError
from bilitube.fetchers.bilibili.client import BilibiliClient

NAV = {
    "code": -101,
    "data": {
        "wbi_img": {
            "img_url": "https://i0.hdslb.com/bfs/wbi/7cd084941338484aae1ad9425b84077c.png",
            "sub_url": "https://i0.hdslb.com/bfs/wbi/4932caff0ff746eab6f01bf08b70ac45.png",
        }
    },
}

ACC_INFO = {
    "code": 0,
    "data": {
        "mid": 123456,
        "name": "测试UP主",
        "face": "https://i0.hdslb.com/face.jpg",
        "sign": "YouTube: UCtest123",
        "level": 6,
        "official": {"type": 0, "desc": "知名UP主"},
    },
}

RELATION_STAT = {"code": 0, "data": {"mid": 123456, "follower": 98765}}


def ok(data):
    return httpx.Response(200, json={"code": 0, "message": "0", "data": data})


class Recorder:
    """记录请求并按路径返回预设响应"""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        response = self.routes.get(request.url.path)
        if response is None:
            return httpx.Response(404)
        return response() if callable(response) else response


class TestBilibiliClient:
    """B站客户端"""

    @pytest.mark.asyncio
    async def test_anonymous_user_info_is_unsigned(self):
        recorder = Recorder({
            "/x/space/acc/info": httpx.Response(200, json=ACC_INFO),
            "/x/relation/stat": httpx.Response(200, json=RELATION_STAT),
        })
        client = BilibiliClient(transport=httpx.MockTransport(recorder))

        user = await client.get_user_info("123456")

        assert user.uid == "123456"
        assert user.name == "测试UP主"
        assert user.follower == 98765
        assert user.level == 6
        assert user.official.desc == "知名UP主"
        info_request = recorder.requests[0]
        assert "w_rid" not in info_request.url.params
        assert info_request.url.params["mid"] == "123456"
        assert "Cookie" not in info_request.headers

    @pytest.mark.asyncio
    async def test_sessdata_signs_requests(self):
        recorder = Recorder({
            "/x/web-interface/nav": httpx.Response(200, json=NAV),
            "/x/space/wbi/acc/info": httpx.Response(200, json=ACC_INFO),
            "/x/relation/stat": httpx.Response(200, json=RELATION_STAT),
        })
        client = BilibiliClient(sessdata="abc", transport=httpx.MockTransport(recorder))

        await client.get_user_info("123456")

        paths = [r.url.path for r in recorder.requests]
        assert paths == ["/x/web-interface/nav", "/x/space/wbi/acc/info", "/x/relation/stat"]
        signed = recorder.requests[1]
        assert "w_rid" in signed.url.params
        assert "wts" in signed.url.params
        assert signed.headers["Cookie"] == "SESSDATA=abc"
        # relation/stat 不签名
        assert "w_rid" not in recorder.requests[2].url.params

    @pytest.mark.asyncio
    async def test_wbi_keys_are_cached(self):
        recorder = Recorder({
            "/x/web-interface/nav": httpx.Response(200, json=NAV),
            "/x/space/wbi/arc/search": lambda: ok({"list": {"vlist": []}}),
        })
        client = BilibiliClient(sessdata="abc", transport=httpx.MockTransport(recorder))

        await client.get_user_videos("1")
        await client.get_user_videos("1")

        assert [r.url.path for r in recorder.requests].count("/x/web-interface/nav") == 1

    @pytest.mark.asyncio
    async def test_api_error_code(self):
        recorder = Recorder({
            "/x/space/acc/info": httpx.Response(200, json={"code": -404, "message": "啥都木有"}),
        })
        client = BilibiliClient(transport=httpx.MockTransport(recorder))

        with pytest.raises(DataFetchError) as exc_info:
            await client.get_user_info("1")
        assert exc_info.value.platform == "bilibili"
        assert "啥都木有" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        client = BilibiliClient(transport=httpx.MockTransport(lambda request: httpx.Response(412, text="blocked")))

        with pytest.raises(DataFetchError, match="HTTP 412"):
            await client.get_hot_rankings()

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        client = BilibiliClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>")))

        with pytest.raises(DataFetchError, match="JSON decode error"):
            await client.get_must_watch_list()

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectTimeout("timeout", request=request)

        client = BilibiliClient(transport=httpx.MockTransport(handler))

        with pytest.raises(DataFetchError, match="Request failed"):
            await client.get_hot_rankings()

    @pytest.mark.asyncio
    async def test_user_videos(self):
        vlist = [
            {"bvid": "BV1xx", "aid": 1, "title": "视频一", "mid": 1, "created": 1700000000,
             "length": "10:00", "play": 100, "video_review": 5},
            {"bvid": "BV2xx", "title": "视频二", "play": "--", "video_review": None},
        ]
        recorder = Recorder({"/x/space/wbi/arc/search": lambda: ok({"list": {"vlist": vlist}})})
        client = BilibiliClient(transport=httpx.MockTransport(recorder))

        videos = await client.get_user_videos("1", page=2, page_size=10)

        assert [v.title for v in videos] == ["视频一", "视频二"]
        assert videos[0].danmaku == 5
        assert videos[1].danmaku == 0
        params = recorder.requests[0].url.params
        assert (params["ps"], params["pn"]) == ("10", "2")

    @pytest.mark.asyncio
    async def test_rankings_extract_unique_owners(self):
        items = [
            {"bvid": "BV1", "owner": {"mid": 1, "name": "a", "face": "f1"}},
            {"bvid": "BV2", "owner": {"mid": 2, "name": "b"}},
            {"bvid": "BV3", "owner": {"mid": 1, "name": "a"}},
            {"bvid": "BV4"},
        ]
        recorder = Recorder({
            "/x/web-interface/ranking/v2": lambda: ok({"list": items}),
            "/x/web-interface/popular/precious": lambda: ok({"list": items[:1]}),
        })
        client = BilibiliClient(transport=httpx.MockTransport(recorder))

        hot = await client.get_hot_rankings()
        top100 = await client.get_top100_creators()
        must_watch = await client.get_must_watch_list()

        assert [(u.uid, u.name) for u in hot] == [("1", "a"), ("2", "b")]
        assert hot[0].follower is None
        assert [u.uid for u in top100] == ["1", "2"]
        assert [u.uid for u in must_watch] == ["1"]
