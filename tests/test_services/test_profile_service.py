# tests/test_services/test_profile_service.py
import pytest
from io import BytesIO
from unittest.mock import patch

from PIL import Image
from sqlalchemy.exc import OperationalError

from core.errors import UnauthorizedError, ValidationError
from core.services.profile import MAX_BIO_LENGTH, MAX_IMAGE_BYTES, ProfileService, sanitize_name, validate_url
from core.utils.image import ImageStore

def png_bytes(color=(200, 30, 30)):
    buffer = BytesIO()
    Image.new("RGB", (8, 8), color).save(buffer, format="PNG")
    return buffer.getvalue()

@pytest.fixture
def image_store(tmp_path):
    return ImageStore(str(tmp_path), "/media")

@pytest.fixture
def profiles(db_session, image_store):
    return ProfileService(db_session, image_store=image_store)

def stored_files(tmp_path):
    return sorted(p for p in tmp_path.rglob("*") if p.is_file())

def test_sign_in_creates_once(profiles):
    first = profiles.sign_in("carol", "Carol " * 30, "carol@example.com")
    again = profiles.sign_in("carol", "Someone Else")
    assert first.id == again.id
    assert len(first.name) <= 100
    with pytest.raises(UnauthorizedError):
        profiles.sign_in("")

def test_sanitize_name():
    assert sanitize_name("  Jane\t<b>Austen</b>\n ") == "Jane bAusten/b"
    with pytest.raises(ValidationError):
        sanitize_name("x" * 101)

def test_update_name(profiles, owner_caller, anonymous):
    assert profiles.update_name(owner_caller, "  Alice   Liddell ").name == "Alice Liddell"
    with pytest.raises(ValidationError):
        profiles.update_name(owner_caller, "   ")
    with pytest.raises(UnauthorizedError):
        profiles.update_name(anonymous, "Nobody")

def test_validate_url():
    assert validate_url(" https://example.com/me ") == "https://example.com/me"
    assert validate_url("") is None
    for bad in ("javascript:alert(1)", "example.com", "https://" + "a" * 2048):
        with pytest.raises(ValidationError):
            validate_url(bad)

def test_update_social_links(profiles, owner_caller):
    user = profiles.update_social_links(owner_caller, {"github_url": "https://github.com/alice"})
    assert user.github_url == "https://github.com/alice"
    user = profiles.update_social_links(owner_caller, {"github_url": ""})
    assert user.github_url is None
    with pytest.raises(ValidationError):
        profiles.update_social_links(owner_caller, {"myspace_url": "https://myspace.com/alice"})

def test_upload_replaces_old_image(profiles, owner_caller, owner, tmp_path):
    first = profiles.upload_profile_image(owner_caller, png_bytes()).profile_image_url
    assert first.startswith(f"/media/profile-images/{owner.id}/")
    assert first.endswith(".png")

    second = profiles.upload_profile_image(owner_caller, png_bytes((0, 0, 255))).profile_image_url
    assert second != first
    files = stored_files(tmp_path)
    assert len(files) == 1
    assert second.endswith(files[0].name)

@pytest.mark.parametrize("data", [b"", b"not an image"])
def test_upload_rejects_non_images(profiles, owner_caller, data):
    with pytest.raises(ValidationError):
        profiles.upload_profile_image(owner_caller, data)

def test_upload_rejects_large_files(profiles, owner_caller):
    with pytest.raises(ValidationError, match="5MB"):
        profiles.upload_profile_image(owner_caller, b"\x89PNG" + b"0" * MAX_IMAGE_BYTES)

def test_failed_update_removes_new_blob(profiles, owner_caller, tmp_path):
    original = profiles.upload_profile_image(owner_caller, png_bytes()).profile_image_url

    with patch.object(profiles.users, "update_user", side_effect=OperationalError("UPDATE", {}, Exception("locked"))):
        with pytest.raises(OperationalError):
            profiles.upload_profile_image(owner_caller, png_bytes((0, 255, 0)))

    files = stored_files(tmp_path)
    assert len(files) == 1
    assert original.endswith(files[0].name)
    assert profiles.get_profile(owner_caller.user_id).profile_image_url == original

def test_update_bio(profiles, owner_caller, anonymous):
    assert profiles.update_bio(owner_caller, "  Reads mostly poetry.\nSometimes novels. ").bio == "Reads mostly poetry.\nSometimes novels."
    assert profiles.update_bio(owner_caller, "x" * MAX_BIO_LENGTH).bio == "x" * 500
    assert profiles.update_bio(owner_caller, "   ").bio is None
    with pytest.raises(UnauthorizedError):
        profiles.update_bio(anonymous, "Nobody")

def test_bio_too_long_keeps_the_old_bio(profiles, owner_caller):
    profiles.update_bio(owner_caller, "Short")
    with pytest.raises(ValidationError) as e:
        profiles.update_bio(owner_caller, "x" * 501)
    assert e.value.message == "Bio too long (501 characters). Maximum length is 500 characters"
    assert profiles.get_profile(owner_caller.user_id).bio == "Short"
