from logfanout import caller
from logfanout.caller import resolve_source_name, set_source_name, reset_source_name, source_name


class TestResolveSourceName:
    def test_explicit_name_wins(self):
        with source_name("from_context"):
            assert resolve_source_name("explicit") == "explicit"

    def test_blank_explicit_name_is_ignored(self):
        with source_name("from_context"):
            assert resolve_source_name("   ") == "from_context"

    def test_context_manager_restores_previous_name(self):
        with source_name("outer"):
            with source_name("inner"):
                assert resolve_source_name() == "inner"
            assert resolve_source_name() == "outer"

    def test_set_and_reset_token(self):
        token = set_source_name("job")
        try:
            assert resolve_source_name() == "job"
        finally:
            reset_source_name(token)

    def test_falls_back_to_placeholder(self, mocker):
        mocker.patch.object(caller, "_outermost_caller", return_value=None)

        assert resolve_source_name() == "UnknownScript"

    def test_never_raises(self, mocker):
        mocker.patch.object(caller, "_outermost_caller", side_effect=RuntimeError("no frames"))

        assert resolve_source_name() == "UnknownScript"


class TestOutermostCaller:
    def test_outermost_user_frame_with_extension_stripped(self, mocker):
        """Only frames of the fake script count as user code, the outermost one is reported"""
        mocker.patch.object(
            caller, "_is_library_file", side_effect=lambda filename, roots: not filename.endswith("nightly_job.py")
        )
        namespace = {"resolve": caller._outermost_caller}
        code = compile("result = resolve()", "/opt/jobs/nightly_job.py", "exec")

        exec(code, namespace)

        assert namespace["result"] == "nightly_job"

    def test_library_and_synthetic_frames_are_skipped(self):
        roots = caller._library_roots()

        assert caller._is_library_file("<stdin>", roots)
        assert caller._is_library_file(caller.__file__, roots)
        assert caller._is_library_file("/usr/lib/python3/site-packages/pkg/mod.py", roots)
        assert not caller._is_library_file("/home/me/scripts/backup.py", roots)
