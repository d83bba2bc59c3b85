"""공개 API import 테스트"""

import geminikit


def test_public_api():
    for name in geminikit.__all__:
        assert hasattr(geminikit, name), name


def test_version():
    assert geminikit.__version__ == "0.1.0"


def test_client_resources_are_cached():
    client = geminikit.GeminiClient(api_key="fake-key")
    assert client.threads is client.threads
    assert client.messages is client.messages
    assert client.files is client.files
    assert isinstance(client.threads, geminikit.Threads)
