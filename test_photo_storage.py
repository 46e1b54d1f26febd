import os

from conftest import fake_upload, uploaded_files


def test_save_writes_file_named_after_teacher_and_field(storage):
    reference = storage.save(fake_upload('selfie.PNG'), 7, 'photo1')

    name = os.path.basename(reference)
    assert name.startswith('7-photo1-')
    assert name.endswith('.png')
    assert storage.exists(reference)


def test_saved_names_are_unique(storage):
    first = storage.save(fake_upload(), 1, 'photo1')
    second = storage.save(fake_upload(), 1, 'photo1')
    assert first != second
    assert len(uploaded_files(storage)) == 2


def test_unsafe_filenames_are_sanitised(storage):
    reference = storage.save(fake_upload('../../etc/passwd'), '../x', 'photo2')
    assert os.path.dirname(reference) == storage.directory


def test_delete_removes_file(storage):
    reference = storage.save(fake_upload(), 1, 'photo1')
    assert storage.delete(reference)
    assert not storage.exists(reference)


def test_delete_missing_file_does_not_raise(storage):
    assert storage.delete(os.path.join(storage.directory, 'nope.jpg')) is False
    assert storage.delete(None) is False


def test_public_url_uses_basename(storage):
    assert storage.public_url('/var/data/uploads/3-photo1-1-2.jpg') == '/uploads/3-photo1-1-2.jpg'
    assert storage.public_url(None) is None
