from tkinter import messagebox
import tkinter as tk


def main():
    try:
        import ttkbootstrap  # noqa: F401
    except ImportError:
        root = tk.Tk()
        root.withdraw()
        messagebox.showerror(
            "오류",
            "ttkbootstrap 라이브러리가 필요합니다.\n터미널에서 'pip install ttkbootstrap'을 실행해주세요.",
        )
        return

    from prompt_tool_app.gui import PromptToolApp

    app = PromptToolApp()
    app.mainloop()


if __name__ == "__main__":
    main()
