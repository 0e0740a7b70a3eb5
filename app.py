# app.py
# CustomTkinter lookup window for the Abs0rb.me archive (dark theme, ZIP-aware).
# - Open an archive site folder OR a ZIP of one (ZIP extracted safely to a temp dir).
# - Username search runs on a background asyncio loop (keeps UI responsive).
# - Live suggestions, Up/Down/Return navigation; profile & event log panes.

from __future__ import annotations
import asyncio
import os
import shutil
import threading
import zipfile
import tempfile
from pathlib import Path
from typing import Optional

import tkinter.filedialog as fd
import tkinter.messagebox as mb
import customtkinter as ctk

from absorb_archive import ArchiveError, FileSource, PrefixSearchSession, ProfileReader, SearchState


# -------------------- small helpers --------------------

def shorten_path(p: str, max_chars: int = 60) -> str:
    """Shorten long paths neatly for labels."""
    if len(p) <= max_chars:
        return p
    keep = max_chars // 2 - 3
    return p[:keep] + "..." + p[-keep:]


def safe_extract_zip(zip_path: str, dest_dir: str) -> None:
    """
    Extract zip contents to dest_dir with basic zip-slip protection.
    Only ensures members stay within dest_dir (no absolute paths / .. traversal).
    """
    dest_abs = os.path.abspath(dest_dir)
    with zipfile.ZipFile(zip_path) as zf:
        for info in zf.infolist():
            target = os.path.abspath(os.path.join(dest_abs, info.filename))
            if target != dest_abs and not target.startswith(dest_abs + os.sep):
                raise RuntimeError(f"Unsafe zip entry: {info.filename!r}")
        zf.extractall(dest_abs)


def find_site_root(folder: str) -> Path:
    """The folder holding data/user_map; ZIPs often wrap it in one extra directory."""
    base = Path(folder)
    for candidate in [base, *sorted(p for p in base.iterdir() if p.is_dir())]:
        if (candidate / "data" / "user_map").is_dir():
            return candidate
    raise FileNotFoundError(f"No data/user_map folder under {folder}")


def format_profile(record: dict) -> str:
    user = record.get("user") or {}
    totals = record.get("totals") or {}
    lines = [
        f"{user.get('display') or user.get('username')}   (@{user.get('username')}, id {user.get('id')})",
        "",
        f"coins:        {user.get('coins', 0):,}",
        f"total xp:     {user.get('total_xp', 0):,}",
        f"views:        {user.get('views', 0):,}",
        f"days played:  {totals.get('days_played', 0):,}",
        f"games played: {totals.get('games_played', 0):,}",
        f"items owned:  {totals.get('items_owned', 0):,}",
    ]
    return "\n".join(lines)


# -------------------- main app --------------------

class ArchiveLookupApp(ctk.CTk):
    """Dark-themed window that opens an archive folder or ZIP and looks users up by name."""

    def __init__(self) -> None:
        super().__init__()

        ctk.set_appearance_mode("dark")
        ctk.set_default_color_theme("blue")

        self.title("Abs0rb.me Archive")
        self.geometry("900x680")
        self.minsize(820, 560)

        # State
        self._loading_thread: Optional[threading.Thread] = None
        self._current_root_label: str = "No archive selected"
        self._tmpdir_path: Optional[str] = None  # holds extracted ZIP dir
        self._session: Optional[PrefixSearchSession] = None
        self._reader: Optional[ProfileReader] = None
        self._last_query: str = ""

        # The search session lives on this loop; UI events are marshalled onto it.
        self._loop = asyncio.new_event_loop()
        self._loop_thread = threading.Thread(target=self._loop.run_forever, daemon=True)
        self._loop_thread.start()

        # Fonts
        self.font_title = ctk.CTkFont(size=18, weight="bold")
        self.font_label = ctk.CTkFont(size=13)
        self.font_mono = ctk.CTkFont(family="Cascadia Mono, Menlo, Consolas, Courier New", size=13)

        # Layout grid
        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(3, weight=1)  # suggestions + profile
        self.grid_rowconfigure(4, weight=1)  # log

        self._build_header()
        self._build_source_bar()
        self._build_search()
        self._build_results()
        self._build_log()

        self._set_status("Ready")
        self.protocol("WM_DELETE_WINDOW", self._on_close)

    # --------- UI sections ---------

    def _build_header(self) -> None:
        header = ctk.CTkFrame(self, corner_radius=10)
        header.grid(row=0, column=0, sticky="ew", padx=12, pady=(12, 6))
        header.grid_columnconfigure(0, weight=1)

        title = ctk.CTkLabel(header, text="User Lookup", font=self.font_title)
        title.grid(row=0, column=0, sticky="w", padx=12, pady=10)

    def _build_source_bar(self) -> None:
        bar = ctk.CTkFrame(self, corner_radius=10)
        bar.grid(row=1, column=0, sticky="ew", padx=12, pady=6)
        bar.grid_columnconfigure(2, weight=1)

        btn_folder = ctk.CTkButton(bar, text="Open Folder", command=self._choose_folder)
        btn_folder.grid(row=0, column=0, padx=(12, 6), pady=10)

        btn_zip = ctk.CTkButton(bar, text="Open ZIP", command=self._choose_zip)
        btn_zip.grid(row=0, column=1, padx=(0, 6), pady=10, sticky="w")

        self.lbl_source = ctk.CTkLabel(bar, text=self._current_root_label, anchor="w", font=self.font_label)
        self.lbl_source.grid(row=0, column=2, sticky="ew", padx=(6, 6), pady=10)

        self.progress = ctk.CTkProgressBar(bar, mode="indeterminate", determinate_speed=1.2)
        self.progress.grid(row=0, column=3, sticky="e", padx=(0, 6), pady=10)

        self.lbl_status = ctk.CTkLabel(bar, text="Status: —", anchor="e")
        self.lbl_status.grid(row=0, column=4, sticky="e", padx=12, pady=10)

    def _build_search(self) -> None:
        box = ctk.CTkFrame(self, corner_radius=10)
        box.grid(row=2, column=0, sticky="ew", padx=12, pady=(6, 6))
        box.grid_columnconfigure(1, weight=1)

        ctk.CTkLabel(box, text="Username:", font=self.font_label).grid(
            row=0, column=0, sticky="w", padx=12, pady=10
        )

        self.entry_query = ctk.CTkEntry(box, placeholder_text="Start typing a username…")
        self.entry_query.grid(row=0, column=1, sticky="ew", padx=(6, 12), pady=10)
        self.entry_query.bind("<KeyRelease>", self._on_query_changed)
        self.entry_query.bind("<Down>", lambda _ev: self._send("on_key_navigate", "down"))
        self.entry_query.bind("<Up>", lambda _ev: self._send("on_key_navigate", "up"))
        self.entry_query.bind("<Return>", lambda _ev: self._send("on_key_navigate", "confirm"))

        self.lbl_error = ctk.CTkLabel(box, text="", text_color="#ff8a8a", anchor="w")
        self.lbl_error.grid(row=1, column=1, sticky="ew", padx=(6, 12), pady=(0, 8))

    def _build_results(self) -> None:
        frame = ctk.CTkFrame(self, corner_radius=10)
        frame.grid(row=3, column=0, sticky="nsew", padx=12, pady=(6, 6))
        frame.grid_columnconfigure((0, 1), weight=1)
        frame.grid_rowconfigure(1, weight=1)

        ctk.CTkLabel(frame, text="Suggestions", font=self.font_label).grid(
            row=0, column=0, sticky="w", padx=12, pady=(10, 2)
        )
        ctk.CTkLabel(frame, text="Profile", font=self.font_label).grid(
            row=0, column=1, sticky="w", padx=12, pady=(10, 2)
        )

        self.txt_results = ctk.CTkTextbox(frame, wrap="none", font=self.font_mono)
        self.txt_results.grid(row=1, column=0, sticky="nsew", padx=(12, 6), pady=(0, 12))
        self.txt_results.bind("<Button-1>", self._on_result_click)
        self._set_text(self.txt_results, "(open an archive and start typing)")

        self.txt_profile = ctk.CTkTextbox(frame, wrap="word", font=self.font_mono)
        self.txt_profile.grid(row=1, column=1, sticky="nsew", padx=(6, 12), pady=(0, 12))
        self._set_text(self.txt_profile, "")

    def _build_log(self) -> None:
        frame = ctk.CTkFrame(self, corner_radius=10)
        frame.grid(row=4, column=0, sticky="nsew", padx=12, pady=(6, 12))
        frame.grid_columnconfigure(0, weight=1)
        frame.grid_rowconfigure(1, weight=1)

        ctk.CTkLabel(frame, text="Event log", font=self.font_label).grid(
            row=0, column=0, sticky="w", padx=12, pady=(10, 2)
        )

        self.txt_log = ctk.CTkTextbox(frame, height=110, wrap="word", font=ctk.CTkFont(size=12))
        self.txt_log.grid(row=1, column=0, sticky="nsew", padx=12, pady=(0, 12))
        self._log("Ready. Open an archive folder or ZIP to begin.")

    # --------- source selection ---------

    def _choose_folder(self) -> None:
        path = fd.askdirectory(title="Choose archive site folder")
        if not path:
            return
        self._start_loading(mode="folder", source=path)

    def _choose_zip(self) -> None:
        path = fd.askopenfilename(
            title="Choose archive ZIP",
            filetypes=[("ZIP archives", "*.zip"), ("All files", "*.*")]
        )
        if not path:
            return
        self._start_loading(mode="zip", source=path)

    # --------- opening pipeline (threaded) ---------

    def _start_loading(self, mode: str, source: str) -> None:
        if self._loading_thread and self._loading_thread.is_alive():
            mb.showinfo("Opening", "An archive is already opening. Please wait.")
            return

        self._cleanup_tmpdir()

        tag = "ZIP" if mode == "zip" else "Folder"
        self._current_root_label = f"{tag}: {shorten_path(source)}"
        self.lbl_source.configure(text=self._current_root_label)
        self._set_status(f"Opening {tag.lower()}…")
        self.progress.start()
        self._session = None

        self._loading_thread = threading.Thread(
            target=self._load_worker, args=(mode, source), daemon=True
        )
        self._loading_thread.start()

    def _load_worker(self, mode: str, source: str) -> None:
        try:
            if mode == "zip":
                self.after(0, self._log, f"Extracting ZIP: {source}")
                tmpdir = tempfile.mkdtemp(prefix="absorb_archive_")
                try:
                    safe_extract_zip(source, tmpdir)
                except Exception:
                    shutil.rmtree(tmpdir, ignore_errors=True)
                    raise
                self._tmpdir_path = tmpdir  # keep until next load/exit
                folder = tmpdir
            else:
                folder = source
            root = find_site_root(folder)
        except Exception as exc:
            self.after(0, lambda e=exc: self._on_load_error(e))
            return

        self.after(0, lambda: self._on_load_ok(root))

    def _on_load_ok(self, root: Path) -> None:
        self.progress.stop()
        source = FileSource(root)
        self._reader = ProfileReader(source)
        # a fresh session per archive: empty partition cache
        self._session = PrefixSearchSession(
            source,
            navigate=self._on_navigate,
            on_change=lambda state: self.after(0, self._render, state),
        )
        self._last_query = ""
        self._set_status("Archive open.")
        self._log(f"Archive root: {root}")
        self.entry_query.focus_set()

    def _on_load_error(self, exc: Exception) -> None:
        self.progress.stop()
        self._set_status("Error while opening archive.")
        self._log(f"ERROR: {exc!r}")
        mb.showerror("Open error", "Failed to open archive.\nSee event log for details.")

    # --------- search (events run on the session loop) ---------

    def _send(self, method: str, *args) -> str:
        if self._session is not None:
            self._loop.call_soon_threadsafe(getattr(self._session, method), *args)
        return "break"

    def _on_query_changed(self, _ev=None) -> None:
        q = self.entry_query.get()
        if q == self._last_query:
            return  # arrow keys / Return
        self._last_query = q
        if self._session is None:
            self._set_text(self.txt_results, "error: please open an archive before searching.")
            return
        self._send("on_query_change", q)

    def _on_result_click(self, ev) -> str:
        row = int(self.txt_results.index(f"@{ev.x},{ev.y}").split(".")[0]) - 1
        session = self._session
        if session is not None and 0 <= row < len(session.suggestions):
            self._send("on_pick", row)
        return "break"

    def _on_navigate(self, user_id: int) -> None:
        # called on the session loop
        self.after(0, self._log, f"Opening user #{user_id}")
        asyncio.ensure_future(self._show_profile(user_id))

    async def _show_profile(self, user_id: int) -> None:
        try:
            record = await self._reader.get_user(user_id)
            text = format_profile(record)
        except ArchiveError as exc:
            text = f"User Not Found\n\n{exc}"
        self.after(0, self._set_text, self.txt_profile, text)

    def _render(self, state: SearchState) -> None:
        self.lbl_error.configure(text=state.error or "")
        if state.loading:
            self._set_status("Loading…")
        else:
            self._set_status("Archive open.")
        if not state.suggestions:
            self._set_text(self.txt_results, "" if not state.query.strip() or state.loading else "(no matches)")
            return
        lines = [
            f"{'›' if i == state.selected else ' '} {s.username:<28} #{s.user_id}"
            for i, s in enumerate(state.suggestions)
        ]
        self._set_text(self.txt_results, "\n".join(lines))

    # --------- misc UI helpers ---------

    def _set_status(self, text: str) -> None:
        self.lbl_status.configure(text=f"Status: {text}")

    @staticmethod
    def _set_text(box: ctk.CTkTextbox, text: str) -> None:
        box.configure(state="normal")
        box.delete("0.0", "end")
        if text:
            box.insert("end", text)
        box.configure(state="disabled")

    def _log(self, msg: str) -> None:
        self.txt_log.insert("end", msg + "\n")
        self.txt_log.see("end")

    # --------- lifecycle ---------

    def _cleanup_tmpdir(self) -> None:
        if self._tmpdir_path and os.path.isdir(self._tmpdir_path):
            try:
                shutil.rmtree(self._tmpdir_path, ignore_errors=True)
            finally:
                self._tmpdir_path = None

    def _on_close(self) -> None:
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._cleanup_tmpdir()
        self.destroy()


if __name__ == "__main__":
    app = ArchiveLookupApp()
    app.mainloop()
