"""
L0 Data — Configuration payloads written into the operator's dotfiles.

Opaque text plus the capability-driven alias fragments.  Conditional
aliases are data: each group lists ``(probe, fragment)`` choices and the
first probe that names an available command wins at write time, so the
written file carries no runtime ``command -v`` checks.
"""

from __future__ import annotations

from servercozy.core.models.context import ShellKind

PATH_EXPORT_LINE = 'export PATH="$HOME/.local/bin:$PATH"'

ALIAS_FILES: dict[ShellKind, str] = {
    ShellKind.BASH: ".bash_aliases",
    ShellKind.ZSH: ".zsh_aliases",
}

VIMRC_FILE = ".vimrc"


# ── Prompt ──────────────────────────────────────────────────────

BASH_PROMPT = r'''prompt_command() {
  local EXIT="$?"
  local GREEN="\[\033[38;5;76m\]"
  local RED="\[\033[38;5;196m\]"
  local YELLOW="\[\033[38;5;220m\]"
  local CYAN="\[\033[38;5;44m\]"
  local RESET="\[\033[0m\]"
  local BOLD="\[\033[1m\]"

  local git_branch=""
  if command -v git &>/dev/null && git rev-parse --is-inside-work-tree &>/dev/null; then
    git_branch=$(git symbolic-ref --short HEAD 2>/dev/null || git describe --tags --always 2>/dev/null)
    git_branch=" (${YELLOW}${git_branch}${RESET})"
  fi

  local pwd_length=30
  local pwd_path="${PWD/#$HOME/~}"
  if [ ${#pwd_path} -gt $pwd_length ]; then
    pwd_path="…${pwd_path: -$pwd_length}"
  fi

  local symbol="${GREEN}❱${RESET}"
  [ $EXIT -ne 0 ] && symbol="${RED}❱${RESET}"

  PS1="${BOLD}\u${RESET}@${BOLD}\h${RESET} ${CYAN}${pwd_path}${RESET}${git_branch} ${symbol} "
}
PROMPT_COMMAND=prompt_command'''

ZSH_PROMPT = r"""autoload -Uz colors && colors
autoload -Uz vcs_info
precmd() {
  local exit_status=$?
  vcs_info
  if [ $exit_status -eq 0 ]; then
    PROMPT_SYMBOL="%{$fg[green]%}❱%{$reset_color%}"
  else
    PROMPT_SYMBOL="%{$fg[red]%}❱%{$reset_color%}"
  fi
}
zstyle ':vcs_info:git:*' formats ' (%{$fg[yellow]%}%b%{$reset_color%})'

function collapse_pwd {
  local pwd_length=30
  local pwd_path="${PWD/#$HOME/~}"
  if [ ${#pwd_path} -gt $pwd_length ]; then
    echo "…${pwd_path: -$pwd_length}"
  else
    echo "$pwd_path"
  fi
}

setopt PROMPT_SUBST
PROMPT='%B%n%b@%B%m%b %{$fg[cyan]%}$(collapse_pwd)%{$reset_color%}${vcs_info_msg_0_} ${PROMPT_SYMBOL} '"""

PROMPTS: dict[ShellKind, str] = {
    ShellKind.BASH: BASH_PROMPT,
    ShellKind.ZSH: ZSH_PROMPT,
}


# ── Aliases ─────────────────────────────────────────────────────

BASE_ALIASES = r"""# Navigation
alias ..='cd ..'
alias ...='cd ../..'
alias ....='cd ../../..'
alias .....='cd ../../../..'

# List directory contents
alias ll='ls -alF'
alias la='ls -A'
alias l='ls -CF'"""

TRAILING_ALIASES = r"""# Git repositories status
alias repofetch='find . -maxdepth 3 -type d -name ".git" | while read dir; do (cd "$(dirname "$dir")" && echo -e "\033[1;36m$(basename "$(pwd)")\033[0m: $(git branch --show-current) [$(git config --get remote.origin.url 2>/dev/null || echo "No remote")]"); done'

# Common shortcuts
alias h='history'
alias j='jobs -l'
alias p='ps -ef'
alias vi='vim'
alias grep='grep --color=auto'
alias df='df -h'
alias du='du -h'
alias free='free -h'
alias path='echo -e ${PATH//:/\\n}'

# Server specific
alias ports='netstat -tulanp'
alias meminfo='free -m -l -t'
alias cpuinfo='lscpu'
alias disk='df -h'
alias dirsize='du -sh'
alias running='ps aux | grep'

alias help='echo -e "Custom commands:\n  sysinfo - Show system information\n  repofetch - Check git repositories status\n  ports - Show open ports\n  meminfo - Show memory information\n  cpuinfo - Show CPU information\n  disk - Show disk usage\n  dirsize - Show directory size\n  running - Search for running processes"'"""

# Platform fallbacks for ``sysinfo`` when no fetch tool is available.
SYSINFO_FALLBACKS: dict[str, str] = {
    "macos": (
        "alias sysinfo='echo -e \"\\n$(hostname) $(date)\" && "
        "echo -e \"macOS $(sw_vers -productVersion)\" && "
        "echo -e \"\\nKernel: $(uname -r)\" && df -h /'"
    ),
    "linux": (
        "alias sysinfo='echo -e \"\\n$(hostname) $(date)\" && "
        "grep -E \"^(NAME|VERSION)=\" /etc/os-release 2>/dev/null; "
        "echo -e \"\\nKernel: $(uname -r)\" && free -h && df -h /'"
    ),
    "bsd": (
        "alias sysinfo='echo -e \"\\n$(hostname) $(date)\" && "
        "echo -e \"$(uname -s) $(uname -r)\" && df -h /'"
    ),
    "_default": (
        "alias sysinfo='echo -e \"\\n$(hostname) $(date)\" && "
        "echo -e \"$(uname -s) $(uname -r)\"'"
    ),
}

# Each group: first choice whose probe command is available wins.
# ``fallback`` names a SYSINFO_FALLBACKS entry used when none match.
ALIAS_GROUPS: list[dict] = [
    {
        "label": "Enhanced listing",
        "choices": [
            ("eza", "alias ls='eza --icons'\nalias ll='eza -alF --icons'\nalias lt='eza -T --icons'"),
            ("exa", "alias ls='exa --icons'\nalias ll='exa -alF --icons'\nalias lt='exa -T --icons'"),
        ],
    },
    {
        "label": "Syntax-highlighted cat",
        "choices": [
            ("bat", "alias cat='bat --style=plain'"),
            ("batcat", "alias bat='batcat'\nalias cat='batcat --style=plain'"),
        ],
    },
    {
        "label": "System information",
        "choices": [
            ("pfetch", "alias sysinfo='pfetch'"),
            ("neofetch", "alias sysinfo='neofetch'"),
        ],
        "fallback": "sysinfo",
    },
    {
        "label": "Smarter cd",
        "choices": [
            ("zoxide", {
                ShellKind.BASH: 'eval "$(zoxide init bash)"',
                ShellKind.ZSH: 'eval "$(zoxide init zsh)"',
            }),
        ],
    },
]


# ── Vim ─────────────────────────────────────────────────────────

VIMRC = r'''" Basic settings
syntax on
set number
set ruler
set showcmd
set showmatch
set incsearch
set hlsearch
set ignorecase
set smartcase
set tabstop=2
set shiftwidth=2
set expandtab
set smarttab
set autoindent
set smartindent
set backspace=indent,eol,start
set cursorline
set wildmenu
set wildmode=list:longest,full
set laststatus=2
set title
set history=1000
set mouse=a

" Colors
set t_Co=256
set background=dark
highlight LineNr term=bold cterm=NONE ctermfg=DarkGrey ctermbg=NONE

" Statusline
set statusline=%F%m%r%h%w\ [FORMAT=%{&ff}]\ [TYPE=%Y]\ [POS=%l,%v][%p%%]\ [BUFFER=%n]

" Filetype detection
filetype on
filetype plugin on
filetype indent on

" Key mappings
nnoremap <C-j> :bnext<CR>
nnoremap <C-k> :bprev<CR>
nnoremap <C-h> :tabprevious<CR>
nnoremap <C-l> :tabnext<CR>
nnoremap <C-t> :tabnew<CR>
nnoremap <C-s> :w<CR>'''


# ── Nerd font ───────────────────────────────────────────────────

NERD_FONT_URL = "https://github.com/ryanoasis/nerd-fonts/releases/latest/download/JetBrainsMono.zip"
NERD_FONT_PREFERRED = "*Medium*Mono.ttf"
