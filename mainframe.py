#!/usr/bin/env python3
"""
Launcher do Painel Clínico em modo terminal (Textual).
"""

import sys

from clinica.adapters.mainframe_tui import main

if __name__ == "__main__":
    print("🚀 Iniciando Painel Clínico - Mainframe Terminal UI...")
    try:
        main()
    except KeyboardInterrupt:
        print("\n👋 Saindo do sistema...")
        sys.exit(0)
