"""Tests for imaging reference classification and proxy rewriting."""

from medfile.services.media import is_dicom_reference, resolve_media_reference

FIREBASE = "https://firebasestorage.googleapis.com"


class TestIsDicomReference:
    def test_dcm_suffix(self):
        assert is_dicom_reference(f"{FIREBASE}/scans/scan.dcm")

    def test_uppercase_suffix(self):
        assert is_dicom_reference(f"{FIREBASE}/scans/SCAN.DCM")

    def test_dicom_suffix(self):
        assert is_dicom_reference("https://example.org/ct.dicom")

    def test_query_string_ignored(self):
        assert is_dicom_reference(f"{FIREBASE}/v0/b/x/o/scan.dcm?alt=media&token=abc")

    def test_percent_encoded_path(self):
        assert is_dicom_reference(f"{FIREBASE}/v0/b/x/o/dicom%2Fscan.dcm?alt=media")

    def test_raster(self):
        assert not is_dicom_reference(f"{FIREBASE}/photos/photo.jpg")

    def test_dcm_only_in_query_is_not_dicom(self):
        assert not is_dicom_reference("https://cdn.example.org/view.png?source=scan.dcm")

    def test_dcm_infix_is_not_dicom(self):
        assert not is_dicom_reference("https://cdn.example.org/scan.dcm.png")

    def test_empty(self):
        assert not is_dicom_reference("")


class TestResolveMediaReference:
    def test_firebase_dicom_is_proxied(self):
        url = f"{FIREBASE}/v0/b/demo/o/scan.dcm"
        ref = resolve_media_reference(url)
        assert ref.kind == "dicom"
        assert ref.origin == "proxied"
        assert ref.url == "/storage-proxy/v0/b/demo/o/scan.dcm"
        assert "firebasestorage.googleapis.com" not in ref.url
        assert ref.source_url == url

    def test_query_preserved_on_proxy(self):
        ref = resolve_media_reference(f"{FIREBASE}/v0/b/demo/o/dicom%2Fscan.dcm?alt=media&token=t1")
        assert ref.url == "/storage-proxy/v0/b/demo/o/dicom%2Fscan.dcm?alt=media&token=t1"

    def test_fragment_preserved_on_proxy(self):
        ref = resolve_media_reference(f"{FIREBASE}/v0/b/demo/o/scan.dcm?alt=media#frame=3")
        assert ref.url == "/storage-proxy/v0/b/demo/o/scan.dcm?alt=media#frame=3"

    def test_fragment_without_query(self):
        ref = resolve_media_reference(f"{FIREBASE}/v0/b/demo/o/scan.dcm#frame=3")
        assert ref.url == "/storage-proxy/v0/b/demo/o/scan.dcm#frame=3"

    def test_raster_passthrough(self):
        url = f"{FIREBASE}/v0/b/demo/o/photo.jpg"
        ref = resolve_media_reference(url)
        assert ref.kind == "raster"
        assert ref.origin == "passthrough"
        assert ref.url == url

    def test_dicom_from_unrecognized_host(self):
        url = "https://pacs.example.org/studies/scan.dcm"
        ref = resolve_media_reference(url)
        assert ref.kind == "dicom"
        assert ref.origin == "unrecognized"
        assert ref.url == url

    def test_relative_dicom_passthrough(self):
        ref = resolve_media_reference("/storage-proxy/v0/b/demo/o/scan.dcm")
        assert ref.kind == "dicom"
        assert ref.origin == "passthrough"
        assert ref.url == "/storage-proxy/v0/b/demo/o/scan.dcm"

    def test_host_match_is_case_insensitive(self):
        ref = resolve_media_reference("https://FirebaseStorage.googleapis.com/o/scan.dcm")
        assert ref.origin == "proxied"
        assert ref.url == "/storage-proxy/o/scan.dcm"

    def test_lookalike_host_not_proxied(self):
        ref = resolve_media_reference("https://firebasestorage.googleapis.com.evil.net/o/scan.dcm")
        assert ref.origin == "unrecognized"

    def test_custom_allow_list_and_prefix(self):
        ref = resolve_media_reference(
            "https://pacs.example.org/studies/scan.dcm",
            allowed_hosts=["pacs.example.org"],
            proxy_prefix="/pacs-proxy/",
        )
        assert ref.origin == "proxied"
        assert ref.url == "/pacs-proxy/studies/scan.dcm"
