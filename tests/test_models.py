"""Test response normalization"""

from musics_client.api.models import (
    CatalogSections,
    CollectionEntry,
    OwnerKey,
    Track,
    UserAccount,
    extract_records,
    normalize_entries,
    normalize_tracks,
)


class TestTrack:
    """Test Track.from_api fallbacks"""

    def test_full_record(self, sample_track_data):
        track = Track.from_api(sample_track_data)

        assert track.id == "t1"
        assert track.title == "Test Song"
        assert track.artist == "Test Artist"
        assert track.genre == "Rock"
        assert track.duration_seconds == 210.0
        assert track.thumbnail_url == "https://cdn.test/t1.jpg"
        assert track.audio_url == "https://cdn.test/t1.mp3"
        assert track.is_playable

    def test_alternate_field_names(self):
        track = Track.from_api({
            "id": 7,
            "name": "Other",
            "artistName": "Someone",
            "category": "Jazz",
            "length": "95.5",
            "image": "img.png",
            "file": "song.ogg",
        })

        assert track.id == "7"
        assert track.title == "Other"
        assert track.artist == "Someone"
        assert track.genre == "Jazz"
        assert track.duration_seconds == 95.5
        assert track.thumbnail_url == "img.png"
        assert track.audio_url == "song.ogg"

    def test_audio_fallback_order(self):
        track = Track.from_api({"id": "x", "url": "last", "musicFile": "third", "audioUrl": ""})
        assert track.audio_url == "third"

    def test_file_objects_are_skipped(self):
        track = Track.from_api({
            "id": "x",
            "musicFile": {"filename": "song.mp3", "size": 1024},
            "file": "https://cdn.test/x.mp3",
            "thumbnailFile": {"filename": "cover.jpg"},
        })

        assert track.audio_url == "https://cdn.test/x.mp3"
        assert track.thumbnail_url is None
        assert Track.from_api({"id": "x", "musicFile": {"a": 1}}).audio_url is None

    def test_defaults(self):
        track = Track.from_api({"_id": "x"})

        assert track.title == "Untitled Track"
        assert track.artist == "Unknown Artist"
        assert track.genre == "Unknown Genre"
        assert track.duration_seconds is None
        assert track.audio_url is None
        assert not track.is_playable

    def test_invalid_duration(self):
        assert Track.from_api({"id": "x", "duration": "abc"}).duration_seconds is None
        assert Track.from_api({"id": "x", "duration": -3}).duration_seconds is None

    def test_normalize_tracks_drops_records_without_id(self):
        tracks = normalize_tracks({"data": [{"_id": "a"}, {"title": "no id"}, "junk"]})
        assert [t.id for t in tracks] == ["a"]


class TestPayloadShapes:
    """Test list payload extraction"""

    def test_bare_list(self):
        assert extract_records([{"a": 1}]) == [{"a": 1}]

    def test_wrapped_lists(self):
        assert extract_records({"favorites": [{"a": 1}]}) == [{"a": 1}]
        assert extract_records({"data": [{"b": 2}]}) == [{"b": 2}]

    def test_single_object_is_wrapped(self):
        assert extract_records({"musicId": "t1"}) == [{"musicId": "t1"}]

    def test_unusable_payloads(self):
        assert extract_records(None) == []
        assert extract_records("text") == []
        assert extract_records({}) == []


class TestCollectionEntry:
    """Test favorite/download/selection records"""

    def test_plain_music_id(self):
        entry = CollectionEntry.from_api(
            {"userId": "u1", "musicId": "t1", "downloadedAt": "2024-01-01"}, "u1"
        )
        assert entry.owner_key == "u1"
        assert entry.music_id == "t1"
        assert entry.created_at == "2024-01-01"
        assert entry.track is None

    def test_populated_music(self, sample_track_data):
        entry = CollectionEntry.from_api({"musicId": sample_track_data}, "u1")

        assert entry.music_id == "t1"
        assert entry.track.title == "Test Song"
        assert entry.owner_key == "u1"

    def test_embedded_track_fields(self):
        entry = CollectionEntry.from_api(
            {"musicId": "t2", "title": "Flat", "musicUrl": "a.mp3"}, "dev-1"
        )
        assert entry.track.id == "t2"
        assert entry.track.audio_url == "a.mp3"

    def test_duplicates_collapse(self):
        entries = normalize_entries([{"musicId": "t1"}, {"musicId": "t1"}, {"id": "t2"}], "u1")
        assert [e.music_id for e in entries] == ["t1", "t2"]


class TestOtherModels:
    def test_user_account(self):
        user = UserAccount.from_api(
            {"_id": "u9", "FullName": "Root", "email": "r@x.io", "userType": "Admin"}
        )
        assert user.id == "u9"
        assert user.full_name == "Root"
        assert user.is_admin

    def test_owner_key(self):
        assert OwnerKey.user("u1").as_params() == {"userId": "u1"}
        assert OwnerKey.device("d1").as_params() == {"deviceId": "d1"}
        assert str(OwnerKey.device("d1")) == "deviceId=d1"

    def test_catalog_sections(self):
        tracks = [Track(id=str(i)) for i in range(15)]
        sections = CatalogSections.from_tracks(tracks)

        assert [t.id for t in sections.trending] == ["0", "1", "2", "3", "4", "5"]
        assert len(sections.for_you) == 6
        assert [t.id for t in sections.others] == ["12", "13", "14"]

    def test_catalog_sections_short_catalog(self):
        sections = CatalogSections.from_tracks([Track(id="a")])
        assert len(sections.trending) == 1
        assert sections.for_you == ()
        assert sections.others == ()
