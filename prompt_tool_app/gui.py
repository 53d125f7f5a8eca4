import tkinter as tk
from tkinter import messagebox
import threading
import queue
import logging
from datetime import datetime
from prompt_tool_app import config, utils
from prompt_tool_app.core import BuildOptions, GuidelineStore
from prompt_tool_app.updater import ConfigurationUnavailable, GuidelineResolver, RefreshScheduler, SettingsStorage
import ttkbootstrap as tb

KEYS = config.STORAGE_KEYS
TEXT = config.UI_TEXT

class PromptToolApp(tb.Window):
    def __init__(self, storage=None):
        super().__init__(themename="litera")
        self.title(TEXT["title"])
        self.geometry("1100x900")

        self.log_queue = queue.Queue()
        self.storage = storage or SettingsStorage()
        self.store = GuidelineStore()
        self.resolver = GuidelineResolver(self.store, self.storage, log_queue=self.log_queue)
        self.scheduler = RefreshScheduler(self, self.resolver, self.log_queue)

        self.model_var = tk.StringVar()
        self.engine_var = tk.StringVar()
        self.aspect_var = tk.StringVar()
        self.seed_var = tk.StringVar()
        self.negative_var = tk.StringVar()
        self.stylize_var = tk.IntVar(value=config.DEFAULT_STYLIZE)
        self.status_var = tk.StringVar(value="-")
        self.last_params = ""

        self.ui_elements = []
        self.log_filter_vars = {
            "DEBUG": tk.BooleanVar(value=True), "INFO": tk.BooleanVar(value=True),
            "WARNING": tk.BooleanVar(value=True), "ERROR": tk.BooleanVar(value=True),
            "CONTEXT": tk.BooleanVar(value=True),
        }

        self.setup_ui()
        self.setup_logging()
        self.after(100, self.process_log_queue)
        self.after(0, self.startup)

    def setup_ui(self):
        paned = tb.Panedwindow(self, orient="horizontal")
        paned.pack(pady=10, padx=10, expand=True, fill="both")
        paned.add(self.create_input_panel(paned), weight=3)
        paned.add(self.create_guideline_panel(paned), weight=2)
        self.create_log_box()

    def create_input_panel(self, parent):
        frame = tb.Frame(parent, padding=10)
        select_frame = tb.Frame(frame)
        select_frame.pack(fill="x", pady=(0, 5))
        tb.Label(select_frame, text="모델").pack(side="left", padx=(0, 5))
        self.model_combo = tb.Combobox(select_frame, textvariable=self.model_var, width=24, state="readonly")
        self.model_combo.pack(side="left")
        self.model_combo.bind("<<ComboboxSelected>>", lambda e: self.on_model_changed())
        tb.Label(select_frame, text="엔진").pack(side="left", padx=(15, 5))
        self.engine_combo = tb.Combobox(select_frame, textvariable=self.engine_var, width=16, state="readonly")
        self.engine_combo.pack(side="left")

        tb.Label(frame, text="한국어 설명").pack(anchor="w", pady=(10, 0))
        self.source_text = tk.Text(frame, height=6, wrap="word")
        self.source_text.pack(fill="x")
        tb.Label(frame, text="사용자 지정 가이드 (선택)").pack(anchor="w", pady=(10, 0))
        self.custom_guideline_text = tk.Text(frame, height=3, wrap="word")
        self.custom_guideline_text.pack(fill="x")

        option_frame = tb.Frame(frame)
        option_frame.pack(fill="x", pady=10)
        tb.Label(option_frame, text="비율").pack(side="left", padx=(0, 5))
        aspect_entry = tb.Entry(option_frame, textvariable=self.aspect_var, width=8)
        aspect_entry.pack(side="left")
        tb.Label(option_frame, text="시드").pack(side="left", padx=(15, 5))
        seed_entry = tb.Entry(option_frame, textvariable=self.seed_var, width=10)
        seed_entry.pack(side="left")
        tb.Label(option_frame, text="스타일 강도").pack(side="left", padx=(15, 5))
        stylize_scale = tb.Scale(option_frame, from_=0, to=1000, variable=self.stylize_var, length=160,
                                 command=lambda v: self.stylize_var.set(int(float(v))))
        stylize_scale.pack(side="left")
        tb.Label(option_frame, textvariable=self.stylize_var, width=5).pack(side="left", padx=(5, 0))

        negative_frame = tb.Frame(frame)
        negative_frame.pack(fill="x")
        tb.Label(negative_frame, text="제외할 요소").pack(side="left", padx=(0, 5))
        negative_entry = tb.Entry(negative_frame, textvariable=self.negative_var)
        negative_entry.pack(side="left", fill="x", expand=True)

        button_frame = tb.Frame(frame)
        button_frame.pack(fill="x", pady=10)
        btn_convert = tb.Button(button_frame, text="변환", command=self.convert, bootstyle="primary")
        btn_convert.pack(side="left", ipady=3)
        btn_clear = tb.Button(button_frame, text="지우기", command=self.clear, bootstyle="secondary-outline")
        btn_clear.pack(side="left", padx=5, ipady=3)
        tb.Button(button_frame, text="파라미터 복사", command=self.copy_params, bootstyle="info-outline").pack(side="right", ipady=3)
        tb.Button(button_frame, text="프롬프트 복사", command=self.copy_prompt, bootstyle="info-outline").pack(side="right", padx=5, ipady=3)

        tb.Label(frame, text="결과 프롬프트").pack(anchor="w")
        self.result_text = tk.Text(frame, height=10, wrap="word", font=("Courier New", 10))
        self.result_text.pack(fill="both", expand=True)
        self.ui_elements.extend([self.model_combo, self.engine_combo, aspect_entry, seed_entry, stylize_scale, negative_entry, btn_convert, btn_clear])
        return frame

    def create_guideline_panel(self, parent):
        frame = tb.LabelFrame(parent, text="가이드라인", padding=10)
        self.guideline_name_label = tb.Label(frame, text=TEXT["model_label"].format("-"))
        self.guideline_name_label.pack(anchor="w")
        self.guideline_version_label = tb.Label(frame, text=TEXT["version_label"].format("-"))
        self.guideline_version_label.pack(anchor="w")
        self.guideline_updated_label = tb.Label(frame, text=TEXT["updated_label"].format("-"))
        self.guideline_updated_label.pack(anchor="w")
        self.guideline_text = tk.Text(frame, height=14, wrap="word", bg="#f7f7f7")
        self.guideline_text.bind("<KeyPress>", lambda e: "break")
        self.guideline_text.pack(fill="both", expand=True, pady=5)
        tb.Label(frame, textvariable=self.status_var, foreground="gray").pack(anchor="w")
        control_frame = tb.Frame(frame)
        control_frame.pack(fill="x", pady=(5, 0))
        btn_settings = tb.Button(control_frame, text="설정", command=self.open_settings, bootstyle="secondary")
        btn_settings.pack(side="left")
        btn_check = tb.Button(control_frame, text="업데이트 확인", command=self.run_check_updates_wrapper, bootstyle="primary-outline")
        btn_check.pack(side="left", padx=5)
        self.ui_elements.extend([btn_settings, btn_check])
        return frame

    def setup_logging(self):
        self.log_filename = f"prompt_tool_log_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
        logging.basicConfig(level=logging.DEBUG, format="[%(asctime)s] [%(levelname)s] %(message)s", datefmt="%H:%M:%S", handlers=[logging.FileHandler(self.log_filename, encoding="utf-8")])
        self.log("로그 파일이 생성되었습니다: " + self.log_filename, "INFO")
    def log(self, message, level="INFO", is_raw=False):
        if not hasattr(self, "log_text"): return
        log_method = getattr(logging, level.lower(), logging.info)
        log_method(message.strip())
        full_message = f"[{datetime.now().strftime('%H:%M:%S')}] [{level}] {message}\n"
        if is_raw: full_message = message
        self.log_text.insert(tk.END, full_message, (level,))
        self.log_text.see(tk.END)
    def process_log_queue(self):
        try:
            while True:
                message, level, is_raw = self.log_queue.get_nowait()
                self.log(message, level, is_raw)
        except queue.Empty: pass
        finally: self.after(100, self.process_log_queue)
    def lock_ui(self):
        for element in self.ui_elements:
            try: element.config(state="disabled")
            except tk.TclError: pass
    def unlock_ui(self):
        for element in self.ui_elements:
            state = "readonly" if isinstance(element, tb.Combobox) else "normal"
            try: element.config(state=state)
            except tk.TclError: pass
    def create_log_box(self):
        log_container = tb.Frame(self)
        log_container.pack(padx=10, pady=(0, 10), fill="both")
        controls_frame = tb.Frame(log_container)
        controls_frame.pack(fill="x", pady=(0, 5))
        tb.Label(controls_frame, text="로그 필터:").pack(side="left", padx=(0, 10))
        for level, var in self.log_filter_vars.items():
            cb = tb.Checkbutton(controls_frame, text=level, variable=var, command=self._update_log_filter, bootstyle="primary-round-toggle")
            cb.pack(side="left", padx=3)
        clear_button = tb.Button(controls_frame, text="로그 지우기", command=self._clear_log, bootstyle="danger-outline")
        clear_button.pack(side="right")
        log_text_frame = tb.LabelFrame(log_container, text="처리 로그", padding=10)
        log_text_frame.pack(fill="both", expand=True)
        self.log_text = tk.Text(log_text_frame, height=8, wrap="word", state="normal", font=("Courier New", 9), bg="#f0f0f0", fg="black")
        self.log_text.bind("<KeyPress>", lambda e: "break")
        colors = {"DEBUG": "gray", "INFO": "black", "WARNING": "#E69138", "ERROR": "red", "CONTEXT": "#4A86E8"}
        for tag, color in colors.items(): self.log_text.tag_configure(tag, foreground=color)
        self.log_text.tag_configure("ERROR", font=("Courier New", 9, "bold"))
        scrollbar = tb.Scrollbar(log_text_frame, command=self.log_text.yview, bootstyle="round")
        self.log_text.config(yscrollcommand=scrollbar.set)
        self.log_text.pack(side="left", fill="both", expand=True)
        scrollbar.pack(side="right", fill="y")
    def _update_log_filter(self):
        for level, var in self.log_filter_vars.items():
            self.log_text.tag_config(level, elide=not var.get())
    def _clear_log(self):
        self.log_text.delete(1.0, tk.END)
    def run_generic_thread(self, target_func, *args):
        thread = threading.Thread(target=lambda: self._task_wrapper(target_func, *args), daemon=True)
        thread.start()
    def _task_wrapper(self, target_func, *args):
        self.after(0, self.lock_ui)
        try: target_func(*args)
        finally: self.after(0, self.unlock_ui)

    def startup(self):
        self.run_generic_thread(self._execute_resolve, True)
        self.scheduler.schedule(self.storage.get(KEYS["AUTO_MINUTES"], config.DEFAULT_AUTO_MINUTES), self.refresh_view)
    def _execute_resolve(self, quiet=False):
        try:
            document = self.resolver.resolve()
        except ConfigurationUnavailable as e:
            message = str(e)
            self.log_queue.put((message, "ERROR", False))
            self.after(0, lambda: messagebox.showerror("가이드라인 오류", message))
            return
        self.after(0, lambda: self.refresh_view(document))
        if not quiet:
            self.after(0, lambda: messagebox.showinfo("업데이트 확인", f"가이드라인 v{document.version} ({document.source})"))
    def run_check_updates_wrapper(self):
        self.log("가이드라인 업데이트 확인...", "INFO")
        self.run_generic_thread(self._execute_resolve)

    def refresh_view(self, document=None):
        document = document or self.store.document
        if document is None: return
        model_ids = [model.id for model in document.models]
        self.model_combo.config(values=model_ids)
        if self.model_var.get() not in model_ids:
            self.model_var.set(model_ids[0] if model_ids else "")
        self.status_var.set(TEXT["status_label"].format(version=document.version, source=document.source))
        self.on_model_changed()
    def on_model_changed(self):
        model = self.store.find_model(self.model_var.get())
        engines = list(model.engines) if model else []
        self.engine_combo.config(values=engines)
        if self.engine_var.get() not in engines:
            self.engine_var.set(engines[0] if engines else "")
        self.render_guideline(model)
    def render_guideline(self, model):
        document = self.store.document
        if model is None:
            self.guideline_name_label.config(text=TEXT["model_label"].format("-"))
            self.guideline_version_label.config(text=TEXT["version_label"].format("-"))
            self.guideline_updated_label.config(text=TEXT["updated_label"].format("-"))
        else:
            self.guideline_name_label.config(text=TEXT["model_label"].format(model.name))
            self.guideline_version_label.config(text=TEXT["version_label"].format(model.latest))
            self.guideline_updated_label.config(text=TEXT["updated_label"].format((document and document.updated_at) or "-"))
        self.guideline_text.delete(1.0, tk.END)
        self.guideline_text.insert(tk.END, utils.format_guideline_summary(model))

    def _read_text(self, widget):
        return widget.get(1.0, tk.END).strip()
    def convert(self):
        options = BuildOptions(
            aspect=self.aspect_var.get().strip(),
            seed=self.seed_var.get().strip(),
            negative=self.negative_var.get().strip(),
            stylize=self.stylize_var.get(),
        )
        source = utils.compose_source_text(self._read_text(self.custom_guideline_text), self._read_text(self.source_text))
        result = self.store.build(self.model_var.get(), self.engine_var.get(), source, options)
        self.result_text.delete(1.0, tk.END)
        if result is None:
            self.result_text.insert(tk.END, TEXT["no_builder"])
            self.last_params = ""
            self.log(f"빌더 없음: {self.model_var.get() or '-'}", "WARNING")
            return
        self.result_text.insert(tk.END, result.full)
        self.last_params = result.params
        self.log(f"프롬프트 생성 완료 ({self.model_var.get()}/{self.engine_var.get()})", "DEBUG")
        context_log = ["---------- 생성된 프롬프트 ----------"]
        context_log.extend(f"   {line}" for line in result.full.splitlines())
        context_log.append(f"   Parameters => {result.params or '-'}")
        context_log.append("------------------------------------")
        self.log("\n".join(context_log) + "\n", "CONTEXT", True)
    def clear(self):
        for widget in (self.source_text, self.custom_guideline_text, self.result_text):
            widget.delete(1.0, tk.END)
        for var in (self.aspect_var, self.seed_var, self.negative_var):
            var.set("")
        self.stylize_var.set(config.DEFAULT_STYLIZE)
        self.last_params = ""
    def _copy_to_clipboard(self, text):
        try:
            self.clipboard_clear()
            self.clipboard_append(text)
        except tk.TclError: pass
    def copy_prompt(self):
        self._copy_to_clipboard(self._read_text(self.result_text))
    def copy_params(self):
        self._copy_to_clipboard(self.last_params)

    def open_settings(self):
        dialog = tb.Toplevel(self)
        dialog.title("설정")
        dialog.transient(self)
        dialog.grab_set()
        url_var = tk.StringVar(value=self.storage.get(KEYS["SOURCE_URL"], ""))
        minutes_var = tk.StringVar(value=str(self.storage.get(KEYS["AUTO_MINUTES"], config.DEFAULT_AUTO_MINUTES)))
        frame = tb.Frame(dialog, padding=15)
        frame.pack(fill="both", expand=True)
        tb.Label(frame, text="가이드라인 JSON URL (비우면 기본 번들 사용)").pack(anchor="w")
        tb.Entry(frame, textvariable=url_var, width=60).pack(fill="x", pady=(0, 10))
        tb.Label(frame, text=f"자동 업데이트 주기(분, 최소 {config.MIN_AUTO_MINUTES})").pack(anchor="w")
        tb.Entry(frame, textvariable=minutes_var, width=8).pack(anchor="w", pady=(0, 10))
        tb.Button(frame, text="저장", bootstyle="primary",
                  command=lambda: self.save_settings(dialog, url_var.get(), minutes_var.get())).pack(anchor="e")
    def save_settings(self, dialog, url, minutes):
        url = url.strip()
        minutes = utils.normalize_minutes(minutes)
        if url: self.storage.set(KEYS["SOURCE_URL"], url)
        else: self.storage.remove(KEYS["SOURCE_URL"])
        self.storage.set(KEYS["AUTO_MINUTES"], minutes)
        self.log(f"설정 저장: URL={url or '(기본 번들)'}, 주기={minutes}분", "INFO")
        self.run_generic_thread(self._execute_resolve, True)
        self.scheduler.schedule(minutes, self.refresh_view)
        dialog.destroy()
