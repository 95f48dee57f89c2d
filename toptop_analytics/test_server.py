import json
import unittest
from unittest.mock import MagicMock

from toptop_analytics.event_log import EventLogStore
from toptop_analytics.server import create_app
from toptop_analytics.storage import MemoryStorage, StorageError


def interaction(**overrides):
    ev = {
        "username": "a",
        "session_id": "s1",
        "video_id": "v1",
        "video_caption": "Epic moment!",
        "interaction_type": "view",
        "device_info": {"platform": "iOS", "screen_width": 390, "screen_height": 844},
    }
    ev.update(overrides)
    return ev


class TestAPIServer(unittest.TestCase):
    def setUp(self):
        self.storage = MemoryStorage()
        self.store = EventLogStore(self.storage)
        self.app = create_app(store=self.store)
        self.client = self.app.test_client()

    def post(self, body):
        return self.client.post('/interactions', json=body, headers={"User-Agent": "TestAgent/1.0"})

    def test_health_endpoint(self):
        response = self.client.get('/health')
        self.assertEqual(response.status_code, 200)
        data = json.loads(response.data)
        self.assertTrue(data['ok'])
        self.assertEqual(data['backend'], 'memory')
        self.assertEqual(response.headers['Access-Control-Allow-Origin'], '*')

    def test_record_single_interaction(self):
        response = self.post(interaction(watch_duration=4))
        self.assertEqual(response.status_code, 200)
        data = json.loads(response.data)
        self.assertEqual(data['accepted'], 1)
        self.assertEqual(data['rejected'], 0)

        stored = self.store.read_all()
        self.assertEqual(len(stored), 1)
        self.assertEqual(stored[0]['watch_duration'], 4)
        self.assertEqual(stored[0]['device_info']['user_agent'], 'TestAgent/1.0')
        self.assertEqual(stored[0]['device_info']['platform'], 'iOS')

    def test_record_batch_with_rejects(self):
        response = self.post({"events": [
            interaction(),
            {"invalid": "event"},
            "not an object",
            interaction(interaction_type="like"),
        ]})
        data = json.loads(response.data)
        self.assertEqual(data['accepted'], 2)
        self.assertEqual(data['rejected'], 2)
        self.assertEqual([e['index'] for e in data['errors']], [1, 2])

    def test_invalid_json(self):
        response = self.client.post('/interactions', data='invalid json', content_type='application/json')
        self.assertEqual(response.status_code, 400)

    def test_options(self):
        response = self.client.options('/interactions')
        self.assertEqual(response.status_code, 204)

    def test_summary_scenario(self):
        self.post({"events": [
            interaction(),
            interaction(interaction_type="like"),
            interaction(username="b", session_id="s2"),
        ]})
        response = self.client.get('/summary')
        data = json.loads(response.data)
        summary = data['summary']
        self.assertEqual(data['log_status'], 'ok')
        self.assertEqual(summary['total_views'], 2)
        self.assertEqual(summary['total_likes'], 1)
        self.assertEqual(summary['total_users'], 2)
        self.assertEqual(summary['top_videos'][0]['video_id'], 'v1')
        self.assertEqual(summary['top_videos'][0]['views'], 2)
        self.assertEqual(summary['top_videos'][0]['likes'], 1)

    def test_summary_on_corrupt_log_is_zeroed(self):
        self.storage.set(self.store.key, "{oops")
        response = self.client.get('/summary')
        self.assertEqual(response.status_code, 200)
        data = json.loads(response.data)
        self.assertEqual(data['log_status'], 'corrupt')
        self.assertEqual(data['summary']['total_views'], 0)
        self.assertEqual(data['summary']['top_videos'], [])

    def test_summary_when_storage_unavailable(self):
        storage = MagicMock()
        storage.name = "s3"
        storage.get.side_effect = StorageError("connection refused")
        client = create_app(store=EventLogStore(storage)).test_client()
        data = json.loads(client.get('/summary').data)
        self.assertEqual(data['log_status'], 'unavailable')
        self.assertEqual(data['summary']['total_interactions'], 0)

    def test_sessions(self):
        self.post({"events": [
            interaction(interaction_type="play", watch_duration=45),
            interaction(interaction_type="pause", watch_duration=45),
        ]})
        data = json.loads(self.client.get('/sessions').data)
        self.assertEqual(len(data['sessions']), 1)
        self.assertEqual(data['sessions'][0]['total_watch_time'], 90)

    def test_video_metrics(self):
        self.post({"events": [interaction(), interaction(interaction_type="share")]})
        data = json.loads(self.client.get('/videos/v1/metrics').data)
        self.assertEqual(data['views'], 1)
        self.assertEqual(data['engagement_rate'], 100.0)

        data = json.loads(self.client.get('/videos/unknown/metrics').data)
        self.assertEqual(data['engagement_rate'], 0)

        data = json.loads(self.client.get('/videos/metrics').data)
        self.assertEqual([v['video_id'] for v in data['videos']], ['v1'])

    def test_recent_interactions_filters(self):
        self.post({"events": [
            interaction(),
            interaction(username="b", video_id="v2"),
            interaction(interaction_type="like"),
        ]})
        data = json.loads(self.client.get('/interactions?limit=2').data)
        self.assertEqual([e['interaction_type'] for e in data['interactions']], ['like', 'view'])
        self.assertEqual(data['interactions'][1]['username'], 'b')

        data = json.loads(self.client.get('/interactions?username=a').data)
        self.assertEqual(len(data['interactions']), 2)

        data = json.loads(self.client.get('/interactions?video_id=v2').data)
        self.assertEqual(len(data['interactions']), 1)

    def test_clear_requires_confirmation(self):
        self.post(interaction())
        response = self.client.delete('/interactions')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(len(self.store.read_all()), 1)

        response = self.client.delete('/interactions?confirm=true')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.store.read_all(), [])

        data = json.loads(self.client.get('/summary').data)
        self.assertEqual(data['summary']['total_views'], 0)
        self.assertEqual(data['summary']['user_activity'], [])

    def test_export_download(self):
        self.post({"events": [interaction(), interaction(interaction_type="like")]})
        summary = json.loads(self.client.get('/summary').data)['summary']

        response = self.client.get('/export')
        self.assertEqual(response.status_code, 200)
        disposition = response.headers['Content-Disposition']
        self.assertIn('attachment; filename="toptop-analytics-', disposition)
        self.assertTrue(disposition.endswith('.json"'))

        doc = json.loads(response.data)
        self.assertEqual(doc['summary'], summary)
        self.assertEqual(len(doc['interactions']), 2)
        self.assertIn('exported_at', doc)


if __name__ == '__main__':
    unittest.main()
